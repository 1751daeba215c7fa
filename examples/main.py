#!/usr/bin/env python3
"""
Walkthrough of formant - parse, validate and reformat a signup form
"""

from decimal import Decimal
from typing import Annotated

from formant import (
    FormObject,
    after_validation,
    before_validation,
    configure,
    parse,
    reformat,
    validates,
)


class SignupForm(FormObject):
    first_name: Annotated[str, parse("strip_whitespace", squish=True), validates(presence=True)]
    last_name: Annotated[str, parse("strip_whitespace"), validates(presence=True)]
    zip: Annotated[str, validates(format={"with": r"^\d{5}$"})]
    phone: Annotated[
        str,
        parse("phone_number"),
        reformat("phone_number", country_code="US"),
        validates(presence=True),
    ]
    meeting_at: Annotated[
        str,
        parse("datetime"),
        reformat("datetime", format="day_date_time", locale="en"),
    ]
    deposit: Annotated[str, parse("currency"), reformat("currency")]
    plan: Annotated[str, validates(inclusion={"in": ["basic", "pro"]})] = "basic"

    @before_validation
    def capitalize_names(self):
        if self.first_name:
            self.first_name = self.first_name.capitalize()

    @after_validation
    def report(self):
        print(f"  validated: {dict(self.errors.to_dict()) or 'no errors'}")


def demo_valid_form():
    """Valid input is normalized, then rendered for display"""
    print("=== Valid Form ===")

    form = SignupForm(
        {
            "first_name": "  joe   bob ",
            "last_name": " Smith ",
            "zip": "60601",
            "phone": "312.555.1212",
            "meeting_at": "2015-08-26 7:18 PM",
            "deposit": "$5,258.31",
        }
    )
    assert form.validate()

    print(f"  canonical phone:   {form.phone}")
    print(f"  canonical deposit: {form.deposit}")
    assert form.phone == "+13125551212"
    assert form.deposit == Decimal("5258.310000")

    form.reformatted()
    print(f"  display phone:     {form.phone}")
    print(f"  display meeting:   {form.meeting_at}")
    print(f"  display deposit:   {form.deposit}")
    assert form.meeting_at == "Wed, Aug 26, 7:18 PM"

    print(f"  params: {form.to_params(compact=True)}")
    print("✓ Valid form works\n")


def demo_invalid_form():
    """Parse errors and rule failures share one error set"""
    print("=== Invalid Form ===")

    form = SignupForm({"first_name": "", "zip": "6060", "phone": "555", "plan": "gold"})
    assert form.invalid()

    for message in form.errors.full_messages():
        print(f"  - {message}")
    assert "Phone is not a valid phone number" in form.errors.full_messages()
    print("✓ Invalid form reports errors\n")


if __name__ == "__main__":
    configure(time_zone="America/Chicago")
    demo_valid_form()
    demo_invalid_form()
