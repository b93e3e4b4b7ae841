"""Tests for billing aggregation and rounding."""

import itertools
from datetime import datetime

import pytest

from core.period import BILLING_TZ
from models.events import Ambiguous, Billable, BillingLine, RosterEntry
from services.billing import aggregate, bill_line, round2

ROSTER = {
    "alice@x.com": RosterEntry("Alice", 500.0),
    "bob@x.com": RosterEntry("Bob", 333.0),
}


@pytest.mark.parametrize(
    "value,expected",
    [
        (1.005, 1.01),
        (2.675, 2.68),
        (1.234, 1.23),
        (0.125, 0.13),
        (-1.005, -1.01),
        (750.0, 750.0),
        (1 / 3, 0.33),
    ],
)
def test_round2_half_away_from_zero(value, expected):
    assert round2(value) == expected


@pytest.mark.parametrize("value", [0.1 + 0.2, 1 / 3, 2.675, 123.456, 442.89000000000004])
def test_round2_is_idempotent(value):
    assert round2(round2(value)) == round2(value)


def test_fee_uses_rounded_hours():
    line = bill_line("bob@x.com", 4 / 3, ROSTER["bob@x.com"])

    assert line.hours == 1.33
    # 1.33 * 333, not 1.3333... * 333 = 444
    assert line.fee == 442.89


def test_aggregate_sums_per_student_in_first_seen_order():
    items = [
        Billable("bob@x.com", 1.0),
        Billable("alice@x.com", 1.5),
        Billable("bob@x.com", 0.5),
    ]

    result = aggregate(items, ROSTER)

    assert result.per_student_hours == {"bob@x.com": 1.5, "alice@x.com": 1.5}
    assert list(result.per_student_hours) == ["bob@x.com", "alice@x.com"]
    assert result.billing_lines == (
        BillingLine("bob@x.com", "Bob", 1.5, 499.5),
        BillingLine("alice@x.com", "Alice", 1.5, 750.0),
    )
    assert result.unresolved_emails == ()
    assert result.ambiguous_events == ()


def test_unknown_student_is_unresolved_not_dropped():
    result = aggregate(
        [Billable("student@y.com", 2.0), Billable("student@y.com", 1.0), Billable("alice@x.com", 1.0)],
        ROSTER,
    )

    assert result.unresolved_emails == ("student@y.com",)
    assert result.per_student_hours["student@y.com"] == 3.0
    assert [line.student_email for line in result.billing_lines] == ["alice@x.com"]


def test_ambiguous_events_keep_encounter_order():
    first = datetime(2025, 3, 20, 10, tzinfo=BILLING_TZ)
    second = datetime(2025, 3, 2, 10, tzinfo=BILLING_TZ)

    result = aggregate([Ambiguous(first), Billable("alice@x.com", 1.0), Ambiguous(second)], ROSTER)

    assert result.ambiguous_events == (first, second)


def test_totals_do_not_depend_on_event_order():
    items = [
        Billable("alice@x.com", 0.25),
        Billable("bob@x.com", 1.5),
        Billable("alice@x.com", 1.25),
        Billable("bob@x.com", 0.75),
    ]
    expected = aggregate(items, ROSTER)

    for permutation in itertools.permutations(items):
        result = aggregate(permutation, ROSTER)
        assert result.per_student_hours == expected.per_student_hours
        assert sorted(result.billing_lines, key=lambda l: l.student_email) == sorted(
            expected.billing_lines, key=lambda l: l.student_email
        )


def test_totals_of_short_lessons_do_not_depend_on_order():
    # 6, 12 and 18 minute lessons
    items = [Billable("alice@x.com", minutes / 60) for minutes in (6, 12, 18)]

    totals = {
        aggregate(permutation, ROSTER).per_student_hours["alice@x.com"]
        for permutation in itertools.permutations(items)
    }

    assert totals == {0.6}


def test_empty_input_is_empty_result():
    result = aggregate([], ROSTER)

    assert result.is_empty
    assert result.per_student_hours == {}
