"""
Document Extraction Service - registration form image -> student record candidate.

PURPOSE:
Staff photograph or scan a (usually Sinhala, often handwritten) student
registration form. The vision model reads it, translates it to English and
returns a flat JSON object used to pre-fill the student form.

IMAGE → VISION MODEL → FREE TEXT → FIRST "{" .. LAST "}" → JSON → FORM
The model is an untrusted text generator. Its reply may wrap the object in
commentary, so we scan for the brace-delimited block instead of expecting
pure JSON. Nothing here is authoritative: a person reviews every field
before the student is saved.

Failure reasons (ExtractionError.reason):
- NO_FILE: empty upload, the model is never called
- MODEL_ERROR: the model call failed
- NO_JSON_FOUND: reply has no {...} block (raw reply attached)
- PARSE_ERROR: the {...} block is not a JSON object (block attached)
"""

import base64
import json
import re
from typing import Any, Dict, Optional, Tuple

from placement_tracker.core.exceptions import ExtractionError, ExtractionFailure
from placement_tracker.core.logger import get_logger
from placement_tracker.schemas.schemas import ExtractionResult
from placement_tracker.services.vision_client import VisionClient, get_vision_client

logger = get_logger(__name__)

DEFAULT_MIME_TYPE = "image/jpeg"
RAW_PREVIEW_CHARS = 500


# ============================================================
# DOMAIN VOCABULARY
# ============================================================

# English district name -> Sinhala spellings seen on forms
DISTRICTS: Dict[str, Tuple[str, ...]] = {
    "Ampara": ("අම්පාර",),
    "Anuradhapura": ("අනුරාධපුර",),
    "Badulla": ("බදුල්ල",),
    "Batticaloa": ("මඩකලපුව", "බත්තිකලාව"),
    "Colombo": ("කොළඹ", "කොළම්බ"),
    "Galle": ("ගාල්ල",),
    "Gampaha": ("ගම්පහ",),
    "Hambantota": ("හම්බන්තොට",),
    "Jaffna": ("යාපනය",),
    "Kalutara": ("කලුතර",),
    "Kandy": ("මහනුවර",),
    "Kegalle": ("කෑගල්ල",),
    "Kilinochchi": ("කිලිනොච්චි",),
    "Kurunegala": ("කුරුණෑගල",),
    "Mannar": ("මන්නාරම",),
    "Matale": ("මතලේ",),
    "Matara": ("මාතර",),
    "Monaragala": ("මොනරාගල",),
    "Mullaitivu": ("මුලතිව්",),
    "Nuwara Eliya": ("නුවර එළිය",),
    "Polonnaruwa": ("පොළොන්නරුව",),
    "Puttalam": ("පුත්තලම",),
    "Ratnapura": ("රත්නපුර",),
    "Trincomalee": ("ත්‍රිකුණාමලය",),
    "Vavuniya": ("වවුනියාව",),
}

VALID_DISTRICTS = frozenset(DISTRICTS)

# Spelling variants the model or the writer use for a district
DISTRICT_VARIANTS: Dict[str, str] = {
    "nuwara-eliya": "Nuwara Eliya",
    "nuwaraeliya": "Nuwara Eliya",
    "monaragala": "Monaragala",
    "moneragala": "Monaragala",
    "kegalla": "Kegalle",
}

PROVINCES: Dict[str, str] = {
    "Western": "බස්නාහිර",
    "Central": "මධ්‍යම",
    "Southern": "දකුණ",
    "Northern": "උතුර",
    "Eastern": "නැගෙනහිර",
    "North Western": "වයඹ",
    "North Central": "උතුරු මැද",
    "Uva": "ඌව",
    "Sabaragamuwa": "සබරගමුව",
}

SINHALA_GENDER_TERMS: Dict[str, str] = {
    "ස්ත්‍රී": "female",
    "ස්ත්රී": "female",
    "ගැහැණු": "female",
    "කාන්තා": "female",
    "පුරුෂ": "male",
    "පිරිමි": "male",
}

ENGLISH_GENDER_TERMS: Dict[str, str] = {
    "female": "female",
    "woman": "female",
    "male": "male",
    "man": "male",
}

GENDER_ALIASES: Dict[str, str] = {
    "m": "male",
    "f": "female",
    "male": "male",
    "female": "female",
    **SINHALA_GENDER_TERMS,
}

VALID_SEX = frozenset({"male", "female", "other"})

PHONE_FIELDS = ("mobilePhone", "whatsappNumber", "guardianContact")

_ENGLISH_GENDER_PATTERN = re.compile(r"\b(female|woman|male|man)\b", re.IGNORECASE)
_MARKED_PATTERN = re.compile(r"[✓✗×✔☑🗹]|checked|marked|circled|\[x\]|\(x\)", re.IGNORECASE)
_GENDER_LABEL_PATTERN = re.compile(r"ස්ත්‍රී|පුරුෂ|gender|sex", re.IGNORECASE)
_DISTRICT_LABEL_PATTERN = re.compile(r"district|දිස්ත්‍රික්කය", re.IGNORECASE)
_JSON_BLOCK_PATTERN = re.compile(r"\{.*\}", re.DOTALL)
_PHONE_SEPARATORS = re.compile(r"[\s\-().]")


# ============================================================
# PROMPTS
# ============================================================

# Target record, in the order the registration form lists it
EXTRACTION_TEMPLATE: Dict[str, Any] = {
    "fullName": "",
    "permanentAddress": "",
    "province": "",
    "district": "",
    "dateOfBirth": "",
    "nationalId": "",
    "passportId": "",
    "passportExpiredDate": "",
    "sex": "",
    "maritalStatus": "",
    "spouseName": "",
    "numberOfChildren": 0,
    "mobilePhone": "",
    "whatsappNumber": "",
    "emailAddress": "",
    "hasDrivingLicense": False,
    "vehicleType": "",
    "educationOL": False,
    "educationAL": False,
    "otherQualifications": "",
    "workExperience": "",
    "workExperienceAbroad": "",
    "expectedJobCategory": "",
    "guardianName": "",
    "guardianContact": "",
}


def build_extraction_prompt() -> str:
    """Fixed instruction sent with every form image."""
    district_lines = ", ".join(
        f"{sinhala[0]} → \"{english}\"" for english, sinhala in DISTRICTS.items()
    )
    province_lines = ", ".join(
        f"{sinhala} → \"{english}\"" for english, sinhala in PROVINCES.items()
    )
    template = json.dumps(EXTRACTION_TEMPLATE, indent=2, ensure_ascii=False)

    return f"""You are an expert at reading Sinhala student registration forms. Analyze this image carefully and extract ALL visible information.

INSTRUCTIONS:
1. Read the image as a structured form: every label, handwritten value, number, checkbox and marking
2. TRANSLATE all Sinhala text to English - do not keep Sinhala in the output
3. For checkbox or circled options return only the option that is marked (✓, ✗, circle, underline)
4. Translate names and addresses phonetically into English

TRANSLATIONS:
- Sex field "ස්ත්‍රී /පුරුෂ භාවය": ස්ත්‍රී → "female", පුරුෂ → "male"
- Marital status: අවිවාහක → "Single", විවාහක → "Married", දික්කසාද → "Divorced", වැන්දඹු → "Widowed"
- Presence markers: ඇත → true, නැත → false (driving license, O/L, A/L)
- Provinces: {province_lines}
- Districts (field "දිස්ත්‍රික්කය"), use exactly one of these English names: {district_lines}

PHONE NUMBERS (mobile, WhatsApp, guardian):
- Remove the leading 0: 0771234567 → "771234567"
- Remove the country code: +94771234567 → "771234567"
- Result is exactly 9 digits

DATES:
- Convert every date to YYYY-MM-DD

OUTPUT:
Return ONLY this JSON object, with ALL TEXT IN ENGLISH, no explanation and no markdown:
{template}"""


OCR_PROMPT = """Extract ALL text from this image. This is a Sinhala handwritten student registration form.
Extract every piece of text you can see, including:
- Names (in Sinhala)
- Addresses (in Sinhala)
- Numbers (phone numbers, ID numbers, dates)
- Any other text visible in the image

Return the extracted text exactly as you see it, preserving the original language (Sinhala/English).
Do not translate anything - just extract the raw text."""


# ============================================================
# RESPONSE PARSING
# ============================================================

def encode_image(image_bytes: bytes) -> str:
    """Binary image -> base64 text for transport."""
    return base64.b64encode(image_bytes).decode("ascii")


def find_json_block(text: str) -> Optional[str]:
    """
    Greedy brace match: from the first "{" to the last "}" in the text.
    Returns None when there is no such block.
    """
    if not text:
        return None
    match = _JSON_BLOCK_PATTERN.search(text)
    return match.group(0) if match else None


def parse_model_response(text: str) -> ExtractionResult:
    """
    Pull the JSON object out of a free-text model reply.

    Raises:
        ExtractionError(NO_JSON_FOUND) with the raw reply attached
        ExtractionError(PARSE_ERROR) with the offending block attached
    """
    block = find_json_block(text)
    if block is None:
        logger.error("No JSON object found in model reply")
        raise ExtractionError(
            ExtractionFailure.NO_JSON_FOUND,
            "Failed to parse extracted data: no JSON object in model reply",
            raw_response=text,
        )

    try:
        data = json.loads(block)
    except json.JSONDecodeError as exc:
        logger.error("Model reply JSON is invalid: %s", exc)
        raise ExtractionError(
            ExtractionFailure.PARSE_ERROR,
            f"Failed to parse extracted data: {exc.msg}",
            raw_response=block,
        ) from exc

    if not isinstance(data, dict):
        raise ExtractionError(
            ExtractionFailure.PARSE_ERROR,
            "Failed to parse extracted data: expected a JSON object",
            raw_response=block,
        )
    return data


# ============================================================
# FIELD NORMALIZATION
# ============================================================

def normalize_phone_number(value: Any) -> str:
    """
    Reduce a Sri Lankan phone number to its 9-digit national number.

    "0771234567" -> "771234567", "+94771234567" -> "771234567".
    Already-normalized numbers pass through unchanged. Anything that is
    not a phone number comes back stripped but otherwise untouched.
    """
    if value is None:
        return ""
    original = str(value).strip()
    digits = _PHONE_SEPARATORS.sub("", original)

    if digits.startswith("+94"):
        digits = digits[3:]
    elif digits.startswith("0094"):
        digits = digits[4:]
    elif digits.startswith("94") and len(digits) == 11:
        digits = digits[2:]

    if digits.startswith("0") and len(digits) == 10:
        digits = digits[1:]

    return digits if digits.isdigit() else original


def _gender_in_line(line: str) -> Optional[str]:
    for term, gender in SINHALA_GENDER_TERMS.items():
        if term in line:
            return gender
    match = _ENGLISH_GENDER_PATTERN.search(line)
    if match:
        return ENGLISH_GENDER_TERMS[match.group(1).lower()]
    return None


def detect_gender(text: str) -> str:
    """
    Find the marked gender option in free text.

    Prefers a line with a check/cross marker near a gender label, then any
    marked line, then the first gender word anywhere. Returns "" if none.
    """
    if not text:
        return ""
    lines = text.split("\n")

    for i, line in enumerate(lines):
        if _GENDER_LABEL_PATTERN.search(line):
            for candidate in lines[i:i + 3]:
                if _MARKED_PATTERN.search(candidate):
                    gender = _gender_in_line(candidate)
                    if gender:
                        return gender
        if _MARKED_PATTERN.search(line):
            gender = _gender_in_line(line)
            if gender:
                return gender

    for line in lines:
        gender = _gender_in_line(line)
        if gender:
            return gender
    return ""


def _district_in_line(line: str) -> Optional[str]:
    lowered = line.lower()
    for english, sinhala_names in DISTRICTS.items():
        if re.search(rf"\b{re.escape(english.lower())}\b", lowered):
            return english
        if any(name in line for name in sinhala_names):
            return english
    for variant, english in DISTRICT_VARIANTS.items():
        if variant in lowered:
            return english
    return None


def detect_district(text: str) -> str:
    """
    Find a Sri Lankan district name (English or Sinhala) in free text.

    Lines just after a district label win over the rest. Returns "" if none.
    """
    if not text:
        return ""
    lines = text.split("\n")

    for i, line in enumerate(lines):
        if _DISTRICT_LABEL_PATTERN.search(line):
            for candidate in lines[i:i + 3]:
                district = _district_in_line(candidate)
                if district:
                    return district

    for line in lines:
        district = _district_in_line(line)
        if district:
            return district
    return ""


def refine_extraction(result: ExtractionResult, raw_text: str) -> ExtractionResult:
    """
    Fill gaps the model left, without touching fields that are already valid.

    - district: empty or not one of the 25 districts -> look it up
    - sex: empty or not male/female/other -> alias map, then raw reply
    - maritalStatus -> lowercase, as stored
    - phone fields -> 9-digit national number
    Returns a new dict.
    """
    refined = dict(result)

    district = refined.get("district")
    if not isinstance(district, str) or district not in VALID_DISTRICTS:
        detected = detect_district(district) if isinstance(district, str) else ""
        detected = detected or detect_district(raw_text)
        if detected:
            logger.info("District post-processing: %r -> %s", district, detected)
            refined["district"] = detected

    sex = refined.get("sex")
    if not isinstance(sex, str) or sex.strip().lower() not in VALID_SEX:
        detected = GENDER_ALIASES.get(sex.strip().lower(), "") if isinstance(sex, str) else ""
        detected = detected or detect_gender(raw_text)
        if detected:
            logger.info("Gender post-processing: %r -> %s", sex, detected)
            refined["sex"] = detected
        elif sex:
            logger.warning("Unexpected gender value: %r", sex)

    marital = refined.get("maritalStatus")
    if isinstance(marital, str):
        refined["maritalStatus"] = marital.strip().lower()

    for field in PHONE_FIELDS:
        value = refined.get(field)
        if isinstance(value, (str, int)) and not isinstance(value, bool) and str(value).strip():
            refined[field] = normalize_phone_number(value)

    return refined


# ============================================================
# PIPELINE
# ============================================================

class DocumentExtractionPipeline:
    """
    One upload -> one model call -> one ExtractionResult.

    Stateless; safe to share between requests.
    """

    def __init__(self, client: VisionClient):
        self.client = client

    def _call_model(self, prompt: str, image_bytes: bytes, mime_type: Optional[str]) -> str:
        if not image_bytes:
            raise ExtractionError(ExtractionFailure.NO_FILE, "No file provided")

        mime_type = mime_type or DEFAULT_MIME_TYPE
        logger.info("Sending %d byte %s image to vision model", len(image_bytes), mime_type)
        reply = self.client.generate(prompt, encode_image(image_bytes), mime_type)
        logger.info("Vision model reply received (%d chars)", len(reply))
        logger.debug("Raw model reply: %s", reply[:RAW_PREVIEW_CHARS])
        return reply

    def extract_with_text(self, image_bytes: bytes, mime_type: Optional[str]) -> Tuple[ExtractionResult, str]:
        """Run the extraction and also return the raw model reply."""
        reply = self._call_model(build_extraction_prompt(), image_bytes, mime_type)
        data = parse_model_response(reply)
        logger.info(
            "Extracted %d fields (fullName: %s, sex: %s, mobilePhone: %s)",
            len(data),
            "present" if data.get("fullName") else "missing",
            data.get("sex") or "missing",
            "present" if data.get("mobilePhone") else "missing",
        )
        return data, reply

    def extract(self, image_bytes: bytes, mime_type: Optional[str]) -> ExtractionResult:
        """
        Image -> parsed form fields, unchanged from the model's JSON.

        Raises:
            ExtractionError with reason NO_FILE, MODEL_ERROR, NO_JSON_FOUND or PARSE_ERROR
        """
        data, _ = self.extract_with_text(image_bytes, mime_type)
        return data

    def extract_text(self, image_bytes: bytes, mime_type: Optional[str]) -> str:
        """Raw transcription of the form, original language preserved."""
        return self._call_model(OCR_PROMPT, image_bytes, mime_type)


# Singleton instance
_pipeline: DocumentExtractionPipeline = None


def get_extraction_pipeline() -> DocumentExtractionPipeline:
    """Get or create the pipeline (singleton). Also the FastAPI dependency."""
    global _pipeline
    if _pipeline is None:
        _pipeline = DocumentExtractionPipeline(get_vision_client())
    return _pipeline
