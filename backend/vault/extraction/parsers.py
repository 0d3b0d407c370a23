"""
Document Parsers — pure `text -> fields` functions, one per document type.

Parsers never see OCR internals and never raise on a missing pattern: an
unmatched field is simply left out of the returned dict. The dict is
validated into the document type's field model by `parse_document_text`.
"""
import re
from typing import Any, Callable, Dict, Optional

from vault.extraction.common import (
    clean,
    extract_pincode,
    find_address_block,
    find_any_date,
    find_labelled,
    find_labelled_date,
    first_match,
    parse_address,
)
from vault.schemas.extracted import DocumentType, ExtractedFields, build_extracted_data
from vault.utils.validators import validate_aadhaar

Parser = Callable[[str], Dict[str, Any]]

# A value running to the end of the line, a comma, or the next label on the same line
_NAME_VALUE = r"([A-Za-z][A-Za-z .']*?)(?=\s*[,;]|\s{2,}|\s+(?:DOB|Date|Father|Gender|Sex|Age)\b|\n|$)"
_OWN_NAME_LABEL = r"(?<!Father's )(?<!Fathers )(?<!Father )(?<!Mother's )(?<!Husband's )\bName|नाम"
_HEADER_WORDS = ("GOVERNMENT", "INDIA", "DEPARTMENT", "INCOME TAX", "CARD", "AUTHORITY", "ELECTION", "COMMISSION")


def _uppercase_name_line(text: str) -> Optional[str]:
    """First all-caps line that is not a card header, e.g. the holder's name on an Aadhaar card."""
    for line in text.split("\n"):
        line = line.strip()
        if re.fullmatch(r"[A-Z][A-Z .]{2,}", line) and not any(word in line for word in _HEADER_WORDS):
            return clean(line)
    return None


def _gender(text: str) -> Optional[str]:
    raw = first_match(
        text,
        [r"(?:Gender|Sex|लिंग)\s*[:\-/]?\s*(Male|Female|Transgender|पुरुष|महिला)", r"\b(MALE|FEMALE)\b"],
        re.IGNORECASE,
    )
    if not raw:
        return None
    lowered = raw.lower()
    if lowered in ("female", "महिला"):
        return "Female"
    if lowered in ("male", "पुरुष"):
        return "Male"
    return raw.title()


def _address(text: str, labels: str = r"Address|पता", stop: str = r"PIN") -> Optional[Dict[str, Any]]:
    address = parse_address(find_address_block(text, labels, stop))
    pincode = extract_pincode(text)
    if address is None and pincode is None:
        return None
    data = address.model_dump(exclude_none=True) if address else {}
    if pincode and not data.get("pincode"):
        data["pincode"] = pincode
    return data


def _put(data: Dict[str, Any], key: str, value: Any) -> None:
    if value is not None and value != "":
        data[key] = value


def parse_aadhaar(text: str) -> Dict[str, Any]:
    data: Dict[str, Any] = {}
    for number in re.finditer(r"(?<!\d)(\d{4})\s*(\d{4})\s*(\d{4})(?!\d)", text):
        if validate_aadhaar("".join(number.groups())):
            data["aadhaar_number"] = "".join(number.groups())
            break

    _put(data, "full_name", find_labelled(text, _OWN_NAME_LABEL, _NAME_VALUE) or _uppercase_name_line(text))
    _put(data, "date_of_birth", find_labelled_date(text, r"DOB|Date of Birth|जन्म तिथि") or find_any_date(text))
    _put(data, "gender", _gender(text))
    _put(data, "father_name", find_labelled(text, r"Father(?:'?s)?(?: Name)?|S/O|पिता", _NAME_VALUE))
    _put(data, "mobile_number", find_labelled(text, r"Mobile(?: No)?|Mob", r"(\d{10})"))
    _put(data, "address", _address(text))
    return data


def parse_pan(text: str) -> Dict[str, Any]:
    data: Dict[str, Any] = {}
    pan = re.search(r"\b([A-Z]{5}\d{4}[A-Z])\b", text)
    if pan:
        data["pan_number"] = pan.group(1)

    _put(data, "full_name", find_labelled(text, _OWN_NAME_LABEL, _NAME_VALUE) or _uppercase_name_line(text))
    _put(data, "father_name", find_labelled(text, r"Father'?s?\s*Name", _NAME_VALUE))
    _put(data, "date_of_birth", find_labelled_date(text, r"DOB|Date of Birth") or find_any_date(text))
    if re.search(r"Signature", text, re.IGNORECASE):
        data["has_signature"] = True
    if re.search(r"Photo", text, re.IGNORECASE):
        data["has_photo"] = True
    return data


def parse_voter_id(text: str) -> Dict[str, Any]:
    data: Dict[str, Any] = {}
    epic = re.search(r"\b([A-Z]{3}\d{7})\b", text)
    if epic:
        data["voter_id_number"] = epic.group(1)

    _put(data, "full_name", find_labelled(text, _OWN_NAME_LABEL, _NAME_VALUE))
    _put(data, "father_name", find_labelled(text, r"(?:Father|Husband)(?:'?s)?(?: Name)?", _NAME_VALUE))
    _put(data, "gender", _gender(text))
    age = find_labelled(text, r"Age", r"(\d{1,3})")
    if age:
        data["age"] = int(age)
    _put(data, "date_of_birth", find_labelled_date(text, r"DOB|Date of Birth"))
    _put(data, "address", _address(text, r"Address"))
    return data


def parse_ration_card(text: str) -> Dict[str, Any]:
    data: Dict[str, Any] = {}
    _put(data, "ration_card_number", find_labelled(text, r"Card No\.?|कार्ड संख्या", r"([A-Z0-9]+)"))
    _put(data, "card_type", first_match(text, [r"\b(APL|BPL|AAY|PHH|NPHH)\b"]))
    _put(data, "full_name", find_labelled(text, r"Head of Family|मुखिया", _NAME_VALUE))
    _put(data, "address", _address(text))
    return data


def parse_income_certificate(text: str) -> Dict[str, Any]:
    data: Dict[str, Any] = {}
    _put(data, "certificate_number", find_labelled(text, r"Certificate No\.?|प्रमाण पत्र संख्या", r"([A-Z0-9/\-]+)"))
    _put(data, "full_name", find_labelled(text, _OWN_NAME_LABEL, _NAME_VALUE))
    _put(data, "father_name", find_labelled(text, r"Father(?:'?s)?(?: Name)?|Son of|Daughter of|S/O|D/O|पिता", _NAME_VALUE))

    income = re.search(r"(?:Income|आय)\s*[:\-]?\s*(?:Rs\.?|₹|INR)?\s*(\d+(?:,\d+)*)", text, re.IGNORECASE)
    if income:
        data["annual_income"] = int(income.group(1).replace(",", ""))

    _put(data, "issue_date", find_labelled_date(text, r"Issued on|Date of Issue|Date"))
    _put(data, "expiry_date", find_labelled_date(text, r"Valid till|Valid up to|Valid upto"))
    _put(data, "issuing_authority", find_labelled(text, r"Issued by|Authority", r"([^\n]*?)(?=\s+Date\b|\n|$)"))
    _put(data, "address", _address(text, r"Resident of|Address", r"Income"))
    return data


def parse_driving_license(text: str) -> Dict[str, Any]:
    data: Dict[str, Any] = {}
    _put(data, "license_number", find_labelled(
        text, r"DL No\.?|License No\.?|Licence No\.?", r"([A-Z]{2}[\- ]?\d{2}[\- ]?\d{4}[\- ]?\d{7}|[A-Z0-9][A-Z0-9\-/]*)"))
    _put(data, "full_name", find_labelled(text, _OWN_NAME_LABEL, _NAME_VALUE))
    _put(data, "father_name", find_labelled(text, r"S/?D/?W of|Son/Daughter/Wife of", _NAME_VALUE))
    _put(data, "date_of_birth", find_labelled_date(text, r"DOB|Date of Birth"))
    _put(data, "issue_date", find_labelled_date(text, r"Issue Date|Date of Issue|Issued"))
    _put(data, "expiry_date", find_labelled_date(text, r"Valid Till|Valid Upto|Validity(?:\s*\(NT\))?"))
    _put(data, "vehicle_class", find_labelled(text, r"COV|Class of Vehicle", r"([A-Z0-9 ,]+)"))
    _put(data, "address", _address(text, r"Address"))
    return data


def parse_passport(text: str) -> Dict[str, Any]:
    data: Dict[str, Any] = {}
    number = re.search(r"\b([A-Z]\d{7})\b", text)
    if number:
        data["passport_number"] = number.group(1)

    given = find_labelled(text, r"Given\s*Name(?:s|\(s\))?", r"([A-Z][A-Z ]*)")
    surname = find_labelled(text, r"Surname", r"([A-Z][A-Z ]*)")
    if given:
        data["full_name"] = clean(f"{given} {surname or ''}")
    else:
        _put(data, "full_name", find_labelled(text, r"\bName", r"([A-Z][A-Z ]*)"))

    _put(data, "date_of_birth", find_labelled_date(text, r"Date\s*of\s*Birth|DOB"))
    _put(data, "issue_date", find_labelled_date(text, r"Date\s*of\s*Issue|Issue\s*Date"))
    _put(data, "expiry_date", find_labelled_date(text, r"Date\s*of\s*Expiry|Expiry\s*Date|Valid\s*Until"))
    _put(data, "gender", _gender(text))
    place_of_birth = find_labelled(text, r"Place\s*of\s*Birth", r"([A-Za-z ,]+)")
    if place_of_birth:
        data["address"] = {"city": place_of_birth}
    _put(data, "issuing_authority", find_labelled(text, r"Place\s*of\s*Issue", r"([A-Za-z ]+)"))
    return data


def parse_birth_certificate(text: str) -> Dict[str, Any]:
    data: Dict[str, Any] = {}
    _put(data, "certificate_number", find_labelled(
        text, r"Certificate\s*(?:No\.?|Number)|Registration\s*(?:No\.?|Number)", r"([A-Z0-9/\-]+)"))
    _put(data, "full_name", find_labelled(text, r"Name\s*of\s*(?:Child|Baby)|Child'?s?\s*Name", _NAME_VALUE))
    _put(data, "date_of_birth", find_labelled_date(text, r"Date\s*of\s*Birth|DOB|Born\s*on"))
    _put(data, "gender", _gender(text))
    _put(data, "father_name", find_labelled(text, r"Father'?s?\s*Name", _NAME_VALUE))
    _put(data, "mother_name", find_labelled(text, r"Mother'?s?\s*Name", _NAME_VALUE))
    place_of_birth = find_labelled(text, r"Place\s*of\s*Birth", r"([A-Za-z ,]+)")
    if place_of_birth:
        data["address"] = {"city": place_of_birth}
    _put(data, "issue_date", find_labelled_date(text, r"Date\s*of\s*Issue|Issue\s*Date|Issued\s*on"))
    _put(data, "issuing_authority", find_labelled(text, r"Registrar|Issued\s*by", r"([A-Za-z ,]+)"))
    return data


def parse_certificate(text: str) -> Dict[str, Any]:
    """Fallback for certificates without a dedicated layout."""
    data: Dict[str, Any] = {}
    _put(data, "full_name", find_labelled(text, _OWN_NAME_LABEL, _NAME_VALUE))
    _put(data, "certificate_number", find_labelled(
        text, r"Certificate\s*(?:No\.?|Number)|Registration\s*(?:No\.?|Number)|\bNo\.", r"([A-Z0-9][A-Z0-9/\-]*)"))
    _put(data, "issue_date", find_labelled_date(text, r"Date\s*of\s*Issue|Issued\s*on|Date"))
    _put(data, "address", _address(text, r"Address|Resident of"))
    return data


PARSERS: Dict[DocumentType, Parser] = {
    DocumentType.AADHAAR_CARD: parse_aadhaar,
    DocumentType.PAN_CARD: parse_pan,
    DocumentType.VOTER_ID: parse_voter_id,
    DocumentType.RATION_CARD: parse_ration_card,
    DocumentType.INCOME_CERTIFICATE: parse_income_certificate,
    DocumentType.DRIVING_LICENSE: parse_driving_license,
    DocumentType.PASSPORT: parse_passport,
    DocumentType.BIRTH_CERTIFICATE: parse_birth_certificate,
    DocumentType.DEATH_CERTIFICATE: parse_certificate,
    DocumentType.CASTE_CERTIFICATE: parse_certificate,
    DocumentType.COMMUNITY_CERTIFICATE: parse_certificate,
    DocumentType.DOMICILE_CERTIFICATE: parse_certificate,
    DocumentType.RESIDENCE_CERTIFICATE: parse_certificate,
    DocumentType.MARRIAGE_CERTIFICATE: parse_certificate,
    DocumentType.SSLC_CERTIFICATE: parse_certificate,
    DocumentType.PENSION_CERTIFICATE: parse_certificate,
}


def parse_fields(document_type: DocumentType | str, text: str) -> Dict[str, Any]:
    """Raw field dict for `text`; types without a parser yield no fields."""
    parser = PARSERS.get(DocumentType(document_type))
    if parser is None or not text:
        return {}
    return parser(text)


def parse_document_text(document_type: DocumentType | str, text: str, confidence: float = 0) -> ExtractedFields:
    """Parse OCR text into the typed field set for `document_type`."""
    values = parse_fields(document_type, text)
    values["raw_text"] = text or ""
    values["confidence"] = max(0.0, min(100.0, float(confidence or 0)))
    return build_extracted_data(document_type, values)
