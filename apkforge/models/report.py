"""
Quark report models.

The summary report quark-engine writes to ``quarkReport.json`` when run with
``-s -o``. Only the fields shown in the summary table are modelled; anything
else quark adds is ignored.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class QuarkCrime(BaseModel):
    """One matched behaviour rule."""

    model_config = ConfigDict(extra="ignore")

    crime: str = Field(description="Description of the detected behaviour")
    confidence: str = Field(default="0%", description="Matched stage as a percentage, e.g. '80%'")
    score: float = Field(default=0.0)
    weight: float = Field(default=0.0)
    permissions: list[str] = Field(default_factory=list)
    label: list[str] = Field(default_factory=list)

    @property
    def confidence_percent(self) -> int:
        try:
            return int(self.confidence.strip().rstrip("%"))
        except ValueError:
            return 0


class QuarkReport(BaseModel):
    """A quark-engine summary report."""

    model_config = ConfigDict(extra="ignore")

    apk_filename: str = ""
    md5: str = ""
    size_bytes: int = 0
    threat_level: str = ""
    total_score: float = 0.0
    crimes: list[QuarkCrime] = Field(default_factory=list)

    def ranked(self, min_confidence: int = 0) -> list[QuarkCrime]:
        """Crimes at or above a confidence, most confident and heaviest first."""
        kept = [c for c in self.crimes if c.confidence_percent >= min_confidence]
        return sorted(kept, key=lambda c: (-c.confidence_percent, -c.weight, c.crime))
