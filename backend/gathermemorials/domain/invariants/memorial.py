import re
from datetime import date

from gathermemorials.domain.exceptions import InvariantViolation
from .service import assert_service

CUSTOM_URL_PATTERN = re.compile(r"^[a-z0-9-]{3,50}$")

PRIVACY_SETTINGS = {"public", "private", "password"}
NOTIFY_FREQUENCIES = {"instant", "daily", "weekly", "never"}
DONATION_TYPES = {"charity", "gofundme", "parish", "other"}
WIZARD_STEPS = 9

NAME_FIELDS = ("first_name", "middle_name", "last_name", "nickname")
MAX_NAME_LENGTH = 100
MAX_HEADLINE_LENGTH = 200
MAX_OBITUARY_LENGTH = 10000


def assert_custom_url(custom_url):
    if custom_url is None:
        return
    if not isinstance(custom_url, str) or not CUSTOM_URL_PATTERN.match(custom_url):
        raise InvariantViolation(
            "Custom URL must be 3-50 characters of lowercase letters, digits and hyphens."
        )


def assert_lifespan(date_of_birth, date_of_death):
    if date_of_birth and date_of_death and date_of_death < date_of_birth:
        raise InvariantViolation("Date of death cannot be before date of birth.")

    today = date.today()
    for label, value in (("birth", date_of_birth), ("death", date_of_death)):
        if value and value > today:
            raise InvariantViolation(f"Date of {label} cannot be in the future.")


def assert_memorial(memorial, publish=False):
    for field in NAME_FIELDS:
        value = getattr(memorial, field)
        if value and len(value) > MAX_NAME_LENGTH:
            raise InvariantViolation(f"{field} must be at most {MAX_NAME_LENGTH} characters.")

    if memorial.headline and len(memorial.headline) > MAX_HEADLINE_LENGTH:
        raise InvariantViolation(f"Headline must be at most {MAX_HEADLINE_LENGTH} characters.")

    if memorial.obituary and len(memorial.obituary) > MAX_OBITUARY_LENGTH:
        raise InvariantViolation(f"Obituary must be at most {MAX_OBITUARY_LENGTH} characters.")

    assert_lifespan(memorial.date_of_birth, memorial.date_of_death)
    assert_custom_url(memorial.custom_url)

    if memorial.privacy not in PRIVACY_SETTINGS:
        raise InvariantViolation(f"Invalid privacy setting: {memorial.privacy}")

    if memorial.privacy == "password" and not memorial.password_hash:
        raise InvariantViolation("Password-protected memorials require a password.")

    if memorial.guestbook_notify_frequency not in NOTIFY_FREQUENCIES:
        raise InvariantViolation(
            f"Invalid notification frequency: {memorial.guestbook_notify_frequency}"
        )

    if memorial.donation_type and memorial.donation_type not in DONATION_TYPES:
        raise InvariantViolation(f"Invalid donation type: {memorial.donation_type}")

    if not 1 <= (memorial.current_step or 1) <= WIZARD_STEPS:
        raise InvariantViolation("Invalid step number")

    for service in memorial.services:
        assert_service(service)

    if publish:
        if not memorial.first_name or not memorial.last_name:
            raise InvariantViolation("Cannot publish a memorial without a first and last name.")
