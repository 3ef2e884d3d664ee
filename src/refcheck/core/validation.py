from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from datetime import date
from typing import Any

from refcheck.types import TargetCompanyInput, ValidationResult, WorkHistoryInput

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MOBILE_RE = re.compile(r"^010\d{8}$")
LANDLINE_RE = re.compile(r"^0[2-6]\d{7,8}$")
DOMAIN_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9-]{1,61}[a-zA-Z0-9]?\.[a-zA-Z]{2,}$")

MIN_RESPONSIBILITIES_LENGTH = 10

Validator = Callable[[str], ValidationResult]

_OK = ValidationResult(is_valid=True)


def _fail(message: str) -> ValidationResult:
    return ValidationResult(is_valid=False, error=message)


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email))


def validate_email(email: str) -> ValidationResult:
    if not email.strip():
        return _fail("Email is required")
    if not is_valid_email(email):
        return _fail("Enter a valid email address")
    return _OK


def validate_phone(phone: str) -> ValidationResult:
    if not phone.strip():
        return _fail("Phone number is required")

    digits = re.sub(r"\D", "", phone)
    if not MOBILE_RE.match(digits) and not LANDLINE_RE.match(digits):
        return _fail("Enter a valid phone number (e.g. 010-1234-5678)")
    return _OK


def validate_required(value: str, field_name: str) -> ValidationResult:
    if not value.strip():
        return _fail(f"{field_name} is required")
    return _OK


def validate_min_length(value: str, min_length: int, field_name: str) -> ValidationResult:
    if len(value) < min_length:
        return _fail(f"{field_name} must be at least {min_length} characters")
    return _OK


def validate_max_length(value: str, max_length: int, field_name: str) -> ValidationResult:
    if len(value) > max_length:
        return _fail(f"{field_name} must be at most {max_length} characters")
    return _OK


def parse_date(value: str) -> date | None:
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        return None


def validate_date(value: str, field_name: str) -> ValidationResult:
    if not value.strip():
        return _fail(f"{field_name} is required")
    if parse_date(value) is None:
        return _fail("Enter a valid date (YYYY-MM-DD)")
    return _OK


def validate_date_range(start_date: str, end_date: str) -> ValidationResult:
    start = parse_date(start_date)
    end = parse_date(end_date)
    if start is None or end is None or start >= end:
        return _fail("End date must be after start date")
    return _OK


def validate_domain(domain: str) -> ValidationResult:
    if not domain.strip():
        return _fail("Domain is required")
    if not DOMAIN_RE.match(domain):
        return _fail("Enter a valid domain (e.g. company.com)")
    return _OK


def format_phone_number(phone: str) -> str:
    digits = re.sub(r"\D", "", phone)

    if len(digits) == 11 and digits.startswith("010"):
        return f"{digits[:3]}-{digits[3:7]}-{digits[7:]}"

    if len(digits) == 10 and digits.startswith("0"):
        return f"{digits[:3]}-{digits[3:6]}-{digits[6:]}"

    return phone


def combine_validations(value: str, validations: list[Validator]) -> ValidationResult:
    for validation in validations:
        result = validation(value)
        if not result.is_valid:
            return result
    return _OK


def validate_fields(
    data: Mapping[str, Any],
    rules: Mapping[str, Callable[[Any], ValidationResult]],
) -> tuple[bool, dict[str, str]]:
    errors: dict[str, str] = {}
    for field, validator in rules.items():
        result = validator(data.get(field, ""))
        if not result.is_valid:
            errors[field] = result.error or "Invalid value"
    return not errors, errors


def validate_work_history_entry(entry: WorkHistoryInput) -> dict[str, str]:
    errors: dict[str, str] = {}

    if not entry.position.strip():
        errors["position"] = "Position is required"
    if not entry.company.strip():
        errors["company"] = "Company is required"

    start = validate_date(entry.start_date, "Start date")
    if not start.is_valid:
        errors["start_date"] = start.error or ""

    end = validate_date(entry.end_date, "End date")
    if not end.is_valid:
        errors["end_date"] = end.error or ""
    elif start.is_valid:
        date_range = validate_date_range(entry.start_date, entry.end_date)
        if not date_range.is_valid:
            errors["end_date"] = date_range.error or ""

    responsibilities = entry.responsibilities.strip()
    if not responsibilities:
        errors["responsibilities"] = "Responsibilities are required"
    elif len(responsibilities) < MIN_RESPONSIBILITIES_LENGTH:
        errors["responsibilities"] = (
            f"Responsibilities must be at least {MIN_RESPONSIBILITIES_LENGTH} characters"
        )

    return errors


def validate_target_company_entry(entry: TargetCompanyInput) -> dict[str, str]:
    _, errors = validate_fields(
        entry.model_dump(),
        {
            "name": lambda value: validate_required(value, "Company name"),
            "domain": validate_domain,
            "contact_person": lambda value: validate_required(value, "Contact person"),
            "contact_email": validate_email,
        },
    )
    return errors
