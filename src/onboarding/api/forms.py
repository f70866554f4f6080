"""
Multipart parsing for full registration.

Full registration arrives as ``multipart/form-data``: scalar profile fields,
nested objects and lists encoded as JSON strings, and the supporting
document files. Identity fields feed the registration workflow, everything
else is kept on the principal's profile.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from starlette.datastructures import FormData, UploadFile

from onboarding.domain.exceptions import ValidationError
from onboarding.domain.ports import FileUploader
from onboarding.domain.principals import PrincipalKind
from onboarding.domain.variants import Variant

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 5 * 1024 * 1024


@dataclass(frozen=True)
class DocumentSlot:
    """A multipart file field and the document it produces."""

    form_field: str
    document: str
    label: str
    max_count: int = 1


DOCUMENT_SLOTS: dict[PrincipalKind, tuple[DocumentSlot, ...]] = {
    PrincipalKind.INDIVIDUAL: (
        DocumentSlot("cv", "cv_url", "CV/Resume"),
        DocumentSlot("academicCertificateFiles", "academic_certificate_url", "Academic certificate", 5),
    ),
    PrincipalKind.ORGANIZATION: (
        DocumentSlot("registrationCertificate", "registration_certificate_url", "Registration certificate"),
        DocumentSlot("kraCertificate", "kra_certificate_url", "KRA certificate"),
        DocumentSlot("taxComplianceCertificate", "tax_compliance_certificate_url", "Tax compliance certificate"),
        DocumentSlot("cr12", "cr12_url", "CR12 document"),
    ),
}

JSON_FIELDS: dict[PrincipalKind, frozenset[str]] = {
    PrincipalKind.INDIVIDUAL: frozenset(
        {
            "emergencyContact",
            "bankDetails",
            "mpesaDetails",
            "skills",
            "education",
            "certifications",
            "academicCertificates",
            "preferredWorkTypes",
        }
    ),
    PrincipalKind.ORGANIZATION: frozenset(
        {"contactPerson", "bankDetails", "directors", "servicesOffered", "industries"}
    ),
}


@dataclass
class RegistrationForm:
    fields: dict[str, Any] = field(default_factory=dict)
    password: str | None = None
    profile: dict[str, Any] = field(default_factory=dict)
    files: dict[str, list[UploadFile]] = field(default_factory=dict)


def parse_json_field(name: str, raw: Any) -> Any:
    """
    Decode a JSON-encoded form field.

    Raises:
        ValidationError: the value is not valid JSON
    """
    if not isinstance(raw, str):
        return raw
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValidationError(f"{name} must be valid JSON", {"field": name}) from e


def parse_registration_form(variant: Variant, form: FormData) -> RegistrationForm:
    attrs = {variant.wire_name(attr): attr for attr in variant.unique_fields + variant.complete_fields}
    slots = {slot.form_field for slot in DOCUMENT_SLOTS[variant.kind]}
    json_fields = JSON_FIELDS[variant.kind]

    parsed = RegistrationForm()
    for name in form.keys():
        if name in slots:
            uploads = [value for value in form.getlist(name) if isinstance(value, UploadFile)]
            parsed.files[name] = uploads
            continue
        value = form.get(name)
        if isinstance(value, UploadFile):
            raise ValidationError(f"Unexpected file field {name}", {"field": name})
        if name == "password":
            parsed.password = value or None
        elif name in attrs:
            parsed.fields[attrs[name]] = value
        elif name in json_fields:
            parsed.profile[name] = parse_json_field(name, value)
        else:
            parsed.profile[name] = value
    return parsed


def check_documents(variant: Variant, files: dict[str, list[UploadFile]]) -> None:
    """Presence, count and size limits of the uploaded documents."""
    for slot in DOCUMENT_SLOTS[variant.kind]:
        uploads = files.get(slot.form_field, [])
        if not uploads:
            raise ValidationError(f"{slot.label} is required", {"field": slot.form_field})
        if len(uploads) > slot.max_count:
            raise ValidationError(
                f"A maximum of {slot.max_count} file(s) is allowed for {slot.label.lower()}",
                {"field": slot.form_field},
            )
        for upload in uploads:
            if upload.size is not None and upload.size > MAX_FILE_SIZE:
                raise ValidationError(
                    f"{slot.label} file size should not exceed 5MB", {"field": slot.form_field}
                )


def upload_documents(
    variant: Variant, files: dict[str, list[UploadFile]], uploader: FileUploader, folder: str
) -> tuple[dict[str, Any], dict[str, Any]]:
    """
    Upload every document and return ``(documents, profile_additions)``.

    A slot that accepts several files records the first URL as the document
    and lists all of them on the profile.
    """
    documents: dict[str, Any] = {}
    extra: dict[str, Any] = {}
    for slot in DOCUMENT_SLOTS[variant.kind]:
        urls = []
        for upload in files[slot.form_field]:
            result = uploader.upload(upload.file, upload.filename or slot.form_field, f"{folder}/{slot.form_field}")
            urls.append(result.secure_url)
        documents[slot.document] = urls[0]
        if slot.max_count > 1:
            extra[f"{slot.form_field}Urls"] = urls
    logger.info("Uploaded %d document(s) for %s registration", len(documents), variant.kind.value)
    return documents, extra
