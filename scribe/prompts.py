"""Request templates for the three operations."""

from typing import List

from scribe.models import (
    BlobPart,
    MediaUnit,
    Part,
    RequestTemplate,
    TextPart,
    TextUnit,
    WorkUnit,
)

OCR_INSTRUCTION = (
    "TASK: HIGH-PRECISION ARABIC OCR. EXTRACT ALL TEXT WITH DIACRITICS. "
    "PRESERVE EVERY WORD."
)
FOOTNOTE_INSTRUCTION = (
    " COLLECT FOOTNOTES AT THE END OF THE CHUNK AND KEEP THEIR NUMBERING."
)


def ocr_template() -> RequestTemplate:
    def build(unit: WorkUnit, total: int) -> List[Part]:
        if not isinstance(unit, MediaUnit):
            raise TypeError("OCR requests need media units")
        parts: List[Part] = [TextPart(OCR_INSTRUCTION)]
        parts.extend(
            BlobPart(mime_type=payload.mime_type, data=payload.data)
            for payload in unit.payloads
        )
        return parts

    return build


def format_template(process_footnotes: bool = True) -> RequestTemplate:
    def build(unit: WorkUnit, total: int) -> List[Part]:
        if not isinstance(unit, TextUnit):
            raise TypeError("Format requests need text units")
        instruction = (
            "TASK: CONVERT TEXT CHUNK TO ACADEMIC HTML FOR MS WORD. "
            f"CHUNK {unit.index + 1}/{total}. PRESERVE DIACRITICS AND FOOTNOTES."
        )
        if process_footnotes:
            instruction += FOOTNOTE_INSTRUCTION
        return [TextPart(instruction), TextPart(unit.text)]

    return build


def translate_template(
    target_language: str, domain: str = "general", process_footnotes: bool = True
) -> RequestTemplate:
    def build(unit: WorkUnit, total: int) -> List[Part]:
        if not isinstance(unit, TextUnit):
            raise TypeError("Translation requests need text units")
        instruction = (
            f"TASK: TRANSLATE TO {target_language} ({domain}). "
            "OUTPUT HTML ONLY. DO NOT REMOVE CONTENT."
        )
        if process_footnotes:
            instruction += FOOTNOTE_INSTRUCTION
        return [TextPart(instruction), TextPart(unit.text)]

    return build
