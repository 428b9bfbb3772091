"""Source metadata, query ideas and title fixes from Gemini via instructor structured output."""

from typing import Literal

import instructor
from loguru import logger
from pydantic import BaseModel, Field, field_validator

from schnitzarchiv.config import get_settings
from schnitzarchiv.errors import MetadataGenerationError
from schnitzarchiv.models import SourceCategory


class SourceMetadata(BaseModel):
    """Structured metadata for one candidate page."""

    title: str = Field(
        ...,
        description="Prägnanter deutscher Titel des Artikels, höchstens 80 Zeichen.",
    )
    summary: str = Field(
        ...,
        description="""
        Deutsche Zusammenfassung in zwei Teilen, getrennt durch einen Zeilenumbruch:
        erste Zeile eine kurze Kernaussage (ein Satz), danach 2-3 Sätze mit Details.
        """,
    )
    category: SourceCategory = Field(
        ...,
        description="Genau eine Kategorie: Tutorial, Werkzeug, Material, Technik, Inspiration, Community, Geschichte oder Sonstiges.",
    )
    tags: list[str] = Field(
        default_factory=list,
        description="5-10 deutsche Schlagwörter zum Holzschnitzen, z.B. 'Relief', 'Lindenholz', 'Schnitzmesser'.",
    )
    language: Literal["Deutsch", "English", "Français"] = Field(
        "Deutsch",
        description="Sprache der Seite.",
    )
    quality_score: int = Field(
        ...,
        ge=0,
        le=10,
        description="""
        Fachliche Qualität von 0 bis 10:
        - 9-10: Expertenwissen, ausführliche Anleitungen, professionelle Techniken, Fachartikel
        - 7-8: gute Blogbeiträge, detaillierte Leitfäden, erfahrene Handwerker teilen Wissen
        - 5-6: einfache Anleitungen, allgemeine Informationen, Foren
        - 3-4: oberflächlich, überwiegend kommerziell
        - 0-2: reine Produktlisten, minderwertig oder themenfremd
        """,
    )

    @field_validator("tags")
    @classmethod
    def _clean_tags(cls, tags: list[str]) -> list[str]:
        return [tag.strip() for tag in tags if tag and tag.strip()]


class SearchQueryIdeas(BaseModel):
    """Search queries proposed for a topic."""

    queries: list[str] = Field(
        default_factory=list,
        description="Konkrete Suchanfragen, je eine pro Eintrag.",
    )


class CorrectedTitle(BaseModel):
    """A cleaned-up article title."""

    title: str = Field(..., description="Korrigierter Titel ohne Anführungszeichen, höchstens 80 Zeichen.")


# System prompt for metadata generation
METADATA_SYSTEM_PROMPT = """
Du pflegst eine Wissensdatenbank für Holzschnitzer, vom Einsteiger bis zum Profi.
Du bekommst eine URL und, falls verfügbar, einen Auszug des Seiteninhalts.
Erzeuge daraus Metadaten für den Katalog und bewerte die Qualität KRITISCH.

BEWERTE MIT 0-3, wenn die Seite:
- überwiegend ein Onlineshop ist, der Produkte verkauft
- ein Produktvergleich oder eine Testseite mit Verkaufsabsicht ist
- kaum oder keine Lerninhalte bietet
- auf Affiliate-Marketing ausgerichtet ist

Titel, Zusammenfassung und Schlagwörter immer auf Deutsch, auch bei fremdsprachigen Seiten.
Erfinde keine Inhalte: ohne Seitenauszug nur aus der URL ableiten und vorsichtig bewerten.
"""


QUERY_IDEAS_SYSTEM_PROMPT = """
Du entwickelst Suchanfragen, um hochwertige LERNINHALTE zum Holzschnitzen zu finden:
Anleitungen, Techniken, Leitfäden, Fachartikel. KEINE Shops.

Regeln:
- Nutze Wörter wie "Anleitung", "Technik", "Tutorial", "Guide", "how to", "lernen"
- Sprache: Deutsch, Englisch oder Französisch
- Mische Einsteiger- und Fortgeschrittenenthemen
- Nenne konkrete Techniken, Werkzeuge oder Hölzer, wenn es passt
- VERMEIDE kommerzielle Wörter wie "kaufen", "buy", "shop", "Preis", "price", "bestellen"

Gute Beispiele:
- "Holzschnitzen Kerbschnitt Anleitung für Anfänger"
- "wood carving relief technique step by step"
- "sculpture sur bois gouges affûtage technique"
"""


TITLE_SYSTEM_PROMPT = """
Du korrigierst Artikeltitel für einen Katalog.
1. Behebe Rechtschreibfehler.
2. Ist der Titel unsinnig oder unklar, formuliere einen besseren deutschen Titel aus URL und Zusammenfassung.
3. Halte ihn knapp und beschreibend (höchstens 80 Zeichen).
4. Ist der Titel schon gut, behalte seine Bedeutung bei.
"""


def build_metadata_prompt(url: str, content: str | None, preview_chars: int = 1000) -> str:
    """Build the user message: the URL plus a bounded content preview."""
    parts = [f"URL: {url}"]
    if content:
        parts.append(f"\nSeitenauszug:\n{content[:preview_chars]}")
    return "\n".join(parts)


class MetadataGenerator:
    """Gemini-backed metadata oracle."""

    def __init__(
        self,
        api_key: str | None,
        metadata_model: str = "gemini-2.0-flash",
        query_model: str = "gemini-2.0-flash",
        preview_chars: int = 1000,
    ):
        self.api_key = api_key
        self.metadata_model = metadata_model
        self.query_model = query_model
        self.preview_chars = preview_chars

    def _client(self, model: str):
        if not self.api_key:
            raise MetadataGenerationError("GEMINI_API_KEY not configured")

        return instructor.from_provider(
            f"google/{model}",
            api_key=self.api_key,
            async_client=True,
        )

    async def generate(self, url: str, content: str | None = None) -> SourceMetadata:
        """
        Generate catalog metadata for a page.

        Single attempt: a response that fails validation is not re-asked.

        Raises:
            MetadataGenerationError: missing API key, provider error or
                a response that does not fit SourceMetadata.
        """
        client = self._client(self.metadata_model)

        try:
            return await client.create(
                response_model=SourceMetadata,
                messages=[
                    {"role": "system", "content": METADATA_SYSTEM_PROMPT},
                    {"role": "user", "content": build_metadata_prompt(url, content, self.preview_chars)},
                ],
                max_retries=1,
            )
        except Exception as e:
            raise MetadataGenerationError(f"Failed to generate metadata for {url}: {e}") from e

    async def generate_search_queries(self, topic: str, count: int = 5) -> list[str]:
        """Propose ``count`` search queries for a topic."""
        client = self._client(self.query_model)

        try:
            ideas = await client.create(
                response_model=SearchQueryIdeas,
                messages=[
                    {"role": "system", "content": QUERY_IDEAS_SYSTEM_PROMPT},
                    {"role": "user", "content": f"Erzeuge {count} Suchanfragen zum Thema: \"{topic}\""},
                ],
                max_retries=2,
            )
        except Exception as e:
            raise MetadataGenerationError(f"Failed to generate queries for {topic!r}: {e}") from e

        queries = [q.strip() for q in ideas.queries if q and q.strip()]
        return queries[:count]

    async def correct_title(self, title: str, url: str, summary: str | None = None) -> str:
        """Return a corrected title, or the original one if the LLM call fails."""
        lines = [f'Ursprünglicher Titel: "{title}"', f"URL: {url}"]
        if summary:
            lines.append(f"Zusammenfassung: {summary}")

        try:
            client = self._client(self.query_model)
            result = await client.create(
                response_model=CorrectedTitle,
                messages=[
                    {"role": "system", "content": TITLE_SYSTEM_PROMPT},
                    {"role": "user", "content": "\n".join(lines)},
                ],
                max_retries=2,
            )
        except Exception as e:
            logger.warning(f"Title correction failed, keeping original: {e}")
            return title

        corrected = result.title.strip().strip("\"'").strip()
        return corrected or title


def get_metadata_generator() -> MetadataGenerator:
    """Build the metadata generator from settings."""
    settings = get_settings()
    return MetadataGenerator(
        api_key=settings.gemini_api_key,
        metadata_model=settings.metadata_model,
        query_model=settings.query_model,
        preview_chars=settings.content_preview_chars,
    )
