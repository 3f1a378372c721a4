"""
PDF parsing utilities for extracting pool schedules

Each schedule PDF is rendered to PNG pages with pypdfium2 and sent to Claude in
a single request. The response must be a JSON array of pool objects matching
ExtractedPool; anything else counts as a failed attempt. After
EXTRACTION_ATTEMPTS failed attempts the pool is reported and skipped for this
run (its previous data is preserved by the caller).

Program names are kept exactly as written in the PDF. Mapping them onto
canonical categories happens later, in reconcile.py.
"""

import base64
import io
import json
from typing import List, Literal, Optional

import anthropic
import pypdfium2 as pdfium
from anthropic import Anthropic
from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from constants import (
    ANTHROPIC_API_KEY,
    EXTRACTION_ATTEMPTS,
    EXTRACTION_MAX_TOKENS,
    EXTRACTION_MODEL,
    EXTRACTION_TIMEOUT_SECONDS,
    PDF_MAX_PAGES,
    PDF_RENDER_DPI,
)
from errors import ConfigurationError, ExtractionError, SchemaValidationError

TIME_REGEX = r"^(0?[1-9]|1[0-2]):[0-5]\d[ap]$"
DATE_REGEX = r"^\d{4}-\d{2}-\d{2}$"

DayOfWeek = Literal["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


class ExtractedProgram(BaseModel):
    programName: str
    dayOfWeek: DayOfWeek
    startTime: str = Field(..., pattern=TIME_REGEX, description="12-hour format h:mm[a|p], e.g. '9:00a'")
    endTime: str = Field(..., pattern=TIME_REGEX, description="12-hour format h:mm[a|p], e.g. '2:15p'")
    lanes: Optional[int] = Field(None, gt=0)
    notes: Optional[str] = ""


class ExtractedPool(BaseModel):
    poolName: str
    address: Optional[str] = None
    sfRecParkUrl: Optional[str] = None
    pdfScheduleUrl: Optional[str] = None
    scheduleLastUpdated: Optional[str] = Field(None, pattern=DATE_REGEX)
    scheduleSeason: Optional[str] = None
    scheduleStartDate: Optional[str] = Field(None, pattern=DATE_REGEX)
    scheduleEndDate: Optional[str] = Field(None, pattern=DATE_REGEX)
    lanes: Optional[int] = Field(None, gt=0)
    programs: List[ExtractedProgram]


ExtractedPools = TypeAdapter(List[ExtractedPool])

SYSTEM_PROMPT = "\n".join([
    "You are an expert data extractor for San Francisco public pool schedules.",
    "Important rules:",
    "- Output must be a JSON array of pool objects and nothing else.",
    "- Each pool object has: poolName, address, sfRecParkUrl, pdfScheduleUrl, scheduleLastUpdated,",
    "  scheduleSeason, scheduleStartDate, scheduleEndDate, lanes, programs.",
    "- Each program has: programName, dayOfWeek, startTime, endTime, lanes, notes.",
    "- Use 12-hour time format 'h:mm[a|p]' for startTime and endTime (e.g., '9:00a', '2:15p'). No spaces.",
    "- dayOfWeek must be one of Monday, Tuesday, Wednesday, Thursday, Friday, Saturday, Sunday.",
    "- A program that runs on several days is listed once per day.",
    "- Times and dates should be interpreted in Pacific Time.",
    "- Try to extract scheduleSeason, scheduleStartDate (YYYY-MM-DD), scheduleEndDate (YYYY-MM-DD),",
    "  scheduleLastUpdated (YYYY-MM-DD) and lanes from context if present; if not present, set them to null.",
    "- Keep program names exactly as written in the PDF (no normalization at this stage).",
])


def parse_json_response(response_text):
    """Helper function to extract JSON from API response text."""
    if '```json' in response_text:
        start = response_text.find('```json') + 7
        end = response_text.find('```', start)
        if end != -1:
            return response_text[start:end].strip()
    elif '```' in response_text:
        start = response_text.find('```') + 3
        end = response_text.rfind('```')
        if end != -1 and end > start:
            return response_text[start:end].strip()
    elif '[' in response_text and ']' in response_text:
        start = response_text.find('[')
        end = response_text.rfind(']') + 1
        return response_text[start:end].strip()
    return response_text.strip()


def render_pdf_pages(pdf_bytes, dpi=PDF_RENDER_DPI, max_pages=PDF_MAX_PAGES):
    """
    Render the first pages of a PDF to PNG.

    Args:
        pdf_bytes: Raw PDF content
        dpi: Resolution for rendering (PDF default is 72)
        max_pages: Pages after this are ignored

    Returns:
        List of base64-encoded PNG images, one per page
    """
    pdf = pdfium.PdfDocument(pdf_bytes)
    try:
        images = []
        for index in range(min(len(pdf), max_pages)):
            page = pdf[index]
            pil_image = page.render(scale=dpi / 72).to_pil()
            buffer = io.BytesIO()
            pil_image.save(buffer, format="PNG")
            images.append(base64.standard_b64encode(buffer.getvalue()).decode("utf-8"))
        return images
    finally:
        pdf.close()


def validate_extraction(data):
    """Validate decoded JSON against the extraction schema. A single object is accepted as a one-item list."""
    if isinstance(data, dict):
        data = [data]
    try:
        pools = ExtractedPools.validate_python(data)
    except ValidationError as e:
        raise SchemaValidationError(f"Extraction does not match schema: {e.error_count()} error(s)", cause=e)
    if not pools:
        raise SchemaValidationError("Extraction returned no pools")
    return pools


def build_instructions(hints):
    hints = hints or {}
    return "\n".join([
        "Extract the complete weekly schedule from the attached pool schedule pages.",
        "Return a JSON array with a single pool object.",
        f"If known, set pdfScheduleUrl to: {hints.get('pdfScheduleUrl') or ''}",
        f"If known, set sfRecParkUrl to: {hints.get('sfRecParkUrl') or ''}",
        "Return ONLY the JSON array, no other text.",
    ])


class ScheduleExtractor:
    """Turns schedule PDF bytes into validated ExtractedPool records using Claude."""

    def __init__(self, client=None, model=EXTRACTION_MODEL, attempts=EXTRACTION_ATTEMPTS,
                 max_tokens=EXTRACTION_MAX_TOKENS, renderer=render_pdf_pages):
        if client is None:
            if not ANTHROPIC_API_KEY:
                raise ConfigurationError("ANTHROPIC_API_KEY is not set")
            client = Anthropic(api_key=ANTHROPIC_API_KEY, timeout=EXTRACTION_TIMEOUT_SECONDS)
        self.client = client
        self.model = model
        self.attempts = max(1, attempts)
        self.max_tokens = max_tokens
        self.renderer = renderer

    def _request(self, images, hints):
        content = []
        for image_data in images:
            content.append({
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": "image/png",
                    "data": image_data
                }
            })
        content.append({"type": "text", "text": build_instructions(hints)})

        message = self.client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            system=SYSTEM_PROMPT,
            messages=[{"role": "user", "content": content}]
        )
        text = getattr(message.content[0], "text", None) if message.content else None
        if text is None:
            raise ExtractionError("Claude response has no text content")
        return text.strip()

    def extract(self, pdf_bytes, hints=None):
        """
        Extract the schedule from one PDF.

        hints may carry pdfScheduleUrl and sfRecParkUrl, which are passed to
        the model so it can fill in the URL fields.

        Raises ExtractionError (or SchemaValidationError when the last attempt
        returned JSON of the wrong shape) once all attempts have failed.
        """
        try:
            images = self.renderer(pdf_bytes)
        except Exception as e:
            raise ExtractionError(f"Could not render PDF: {e}", cause=e)
        if not images:
            raise ExtractionError("PDF has no pages")

        last_error = None
        for attempt in range(self.attempts):
            try:
                response_text = parse_json_response(self._request(images, hints))
                return validate_extraction(json.loads(response_text))
            except anthropic.APIError as e:
                print(f"    Attempt {attempt + 1}/{self.attempts}: API error: {e}")
                last_error = ExtractionError(f"Claude API error: {e}", cause=e)
            except json.JSONDecodeError as e:
                print(f"    Attempt {attempt + 1}/{self.attempts}: response is not JSON")
                last_error = ExtractionError(f"Unparseable extraction response: {e}", cause=e)
            except SchemaValidationError as e:
                print(f"    Attempt {attempt + 1}/{self.attempts}: {e}")
                last_error = e
            except ExtractionError as e:
                print(f"    Attempt {attempt + 1}/{self.attempts}: {e}")
                last_error = e

        raise last_error
