"""Word-compatible HTML envelope for assembled output."""

from datetime import datetime
from typing import Optional

RTL_LANGUAGES = frozenset({"ar", "he", "fa", "ur", "yi", "syr"})

WORD_MIME_TYPE = "application/msword"

_TEMPLATE = (
    "<html xmlns:o='urn:schemas-microsoft-com:office:office' "
    "xmlns:w='urn:schemas-microsoft-com:office:word' "
    "xmlns='http://www.w3.org/TR/REC-html40'>"
    "<head><meta charset='utf-8'>"
    "<style>body {{ font-family: 'Calibri', 'Traditional Arabic', sans-serif; "
    "font-size: 14pt; }} p {{ margin: 0 0 10pt 0; text-align: justify; "
    "line-height: 1.6; }}</style></head>"
    '<body lang="{lang}" dir="{direction}">{body}</body></html>'
)


def is_rtl(language: str) -> bool:
    return language.split("-")[0].lower() in RTL_LANGUAGES


def to_word_html(body: str, language: str = "ar") -> str:
    direction = "rtl" if is_rtl(language) else "ltr"
    lang = "AR-SA" if language == "ar" else language.upper()
    return _TEMPLATE.format(lang=lang, direction=direction, body=body)


def download_filename(kind: str, now: Optional[datetime] = None) -> str:
    stamp = (now or datetime.now()).strftime("%Y-%m-%dT%H-%M-%S")
    return f"{kind}-{stamp}.doc"
