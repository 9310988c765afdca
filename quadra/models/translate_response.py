from typing import List

from pydantic import BaseModel


class TranslateResponse(BaseModel):
    url: str
    target_language: str
    state: str
    html: str
    """Translated ``<body>`` markup with scripts removed and asset URLs absolutised."""
    units_total: int
    units_translated: int
    units_failed: int
    failed_texts: List[str]
    """Source text of every unit left untranslated because its translation call failed."""
