from typing import Dict, Literal

LanguageCode = Literal["es", "fr", "de", "it", "ja", "ko", "ta", "hi", "kn", "ml", "te"]

SUPPORTED_LANGUAGES: Dict[str, str] = {
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "ja": "Japanese",
    "ko": "Korean",
    "ta": "Tamil",
    "hi": "Hindi",
    "kn": "Kannada",
    "ml": "Malayalam",
    "te": "Telugu",
}
