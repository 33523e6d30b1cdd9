"""Unit tests for the regex-only extraction pass"""

import pytest

from booking_intake.models.import_job import ExtractionMode
from booking_intake.services.rule_based_extractor import RuleBasedExtractor


@pytest.fixture
def extractor():
    return RuleBasedExtractor()


def extract_one(extractor, text):
    result = extractor.extract(text)
    assert len(result.candidates) == 1
    return result.candidates[0]


def test_short_offer_email(extractor):
    candidate = extract_one(extractor, "Show at The Fillmore, March 3 2025, fee $5000")

    assert candidate.core.date.value == "2025-03-03"
    assert candidate.deal.fee.value == "5000"
    assert candidate.deal.currency.value == "USD"
    assert candidate.venue.name.value == "The Fillmore"
    assert candidate.core.title.value is None
    # missing title and artist
    assert candidate.confidence == 0.0


def test_full_email(extractor):
    text = (
        "Subject: Fwd: Summer Tour - Austin\n"
        "From: Dana Reyes <dana@promo.example>\n\n"
        "Confirming the show at Mohawk, Austin, TX on June 1st, 2025.\n"
        "Load-in 4pm, soundcheck 5:30 PM, doors 8pm, show 9pm.\n"
        "Guarantee of $3,500 against a fee of $5k.\n"
        "Call me at +1 (512) 555-0134."
    )

    result = extractor.extract(text)
    candidate = result.candidates[0]

    assert result.mode == ExtractionMode.RULE_BASED
    assert result.issues == []
    assert candidate.core.title.value == "Summer Tour - Austin"
    assert candidate.core.date.value == "2025-06-01"
    assert candidate.core.setup_time.value == "16:00"
    assert candidate.core.soundcheck_time.value == "17:30"
    assert candidate.core.door_time.value == "20:00"
    assert candidate.core.show_time.value == "21:00"
    assert candidate.deal.guarantee.value == "3500"
    assert candidate.deal.fee.value == "5000"
    assert candidate.venue.name.value == "Mohawk"
    assert candidate.venue.city.value == "Austin"
    assert candidate.venue.state.value == "TX"
    assert candidate.contacts[0].email.value == "dana@promo.example"
    assert candidate.contacts[0].phone.value == "+1 (512) 555-0134"
    assert 0.0 < candidate.confidence < 0.6


def test_european_date(extractor):
    candidate = extract_one(extractor, "Subject: Festival\nDate: 14.07.2025")

    assert candidate.core.date.value == "2025-07-14"


def test_empty_text(extractor):
    candidate = extract_one(extractor, "")

    assert candidate.is_empty
    assert candidate.confidence == 0.0


def test_euro_currency(extractor):
    candidate = extract_one(extractor, "Offer: €2,000 for the club night")

    assert candidate.deal.fee.value == "2000"
    assert candidate.deal.currency.value == "EUR"
