from django.core.exceptions import ValidationError
from django.utils import timezone
import re


class ParentPasswordValidator:
    """
    A parent account needs a password with at least one letter and one digit.
    Length is left to MinimumLengthValidator. Every missing rule is reported
    at once so the signup form shows them together.
    """

    RULES = [
        (r'[A-Za-z]', "Add at least one letter.", 'password_no_letter'),
        (r'\d', "Add at least one digit.", 'password_no_digit'),
    ]

    def validate(self, password, user=None):
        errors = [
            ValidationError(message, code=code)
            for pattern, message, code in self.RULES
            if not re.search(pattern, password or '')
        ]
        if errors:
            raise ValidationError(errors)

    def get_help_text(self):
        return "Use letters and digits."


def validate_phone_number(phone):
    """
    Parent phone rules.

    - Optional leading +
    - Digits only otherwise (spaces and dashes are stripped first)
    - 7-15 digits, the E.164 range
    """
    if not phone:
        return
    cleaned = re.sub(r'[\s\-]', '', phone)
    if not re.match(r'^\+?[0-9]+$', cleaned):
        raise ValidationError(
            "Phone number can only contain digits and an optional leading +.",
            code='invalid_phone',
        )
    digits = cleaned.lstrip('+')
    if len(digits) < 7:
        raise ValidationError(
            "Phone number must have at least 7 digits.",
            code='phone_too_short',
        )
    if len(digits) > 15:
        raise ValidationError(
            "Phone number cannot be longer than 15 digits.",
            code='phone_too_long',
        )


def validate_not_in_future(value):
    if value and value > timezone.localdate():
        raise ValidationError(
            "This date cannot be in the future.",
            code='date_in_future',
        )
