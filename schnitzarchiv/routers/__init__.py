"""HTTP routers for the public site and the admin dashboard."""
