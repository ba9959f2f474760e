"""Tests for the payload shape predicates.

Property tests check that the predicates never raise on arbitrary input
and that they accept exactly the payloads carrying a mapping under their
key.
"""

import pytest
from hypothesis import given, settings, strategies as st

from chatops.models import HandlerCategory
from chatops.validator import (
    REQUIRED_SHAPES,
    has_comment,
    has_issue,
    has_pull_request,
    has_repository,
    has_review,
    is_valid_event,
    satisfies,
)

PREDICATES = {
    "issue": has_issue,
    "pull_request": has_pull_request,
    "comment": has_comment,
    "review": has_review,
    "repository": has_repository,
}

json_scalars = st.one_of(
    st.none(), st.booleans(), st.integers(), st.floats(allow_nan=False), st.text()
)
json_values = st.recursive(
    json_scalars,
    lambda children: st.one_of(
        st.lists(children, max_size=3),
        st.dictionaries(st.text(max_size=10), children, max_size=3),
    ),
    max_leaves=10,
)


@settings(max_examples=100)
@given(value=json_values)
def test_predicates_never_raise(value):
    """Every predicate returns a bool for any JSON value."""
    assert isinstance(is_valid_event(value), bool)
    for predicate in PREDICATES.values():
        assert isinstance(predicate(value), bool)


@settings(max_examples=100)
@given(value=json_values)
def test_is_valid_event_accepts_only_mappings(value):
    assert is_valid_event(value) == isinstance(value, dict)


@settings(max_examples=100)
@given(
    key=st.sampled_from(sorted(PREDICATES)),
    value=json_values,
    extra=st.dictionaries(st.text(max_size=10), json_scalars, max_size=3),
)
def test_predicate_matches_mapping_under_key(key, value, extra):
    """A predicate holds iff its key maps to a non-null mapping."""
    payload = {k: v for k, v in extra.items() if k != key}
    payload[key] = value
    assert PREDICATES[key](payload) == isinstance(value, dict)


@pytest.mark.parametrize("payload", [None, [], "issue", 42])
def test_is_valid_event_rejects_non_objects(payload):
    assert is_valid_event(payload) is False


def test_null_substructure_is_absent():
    assert has_issue({"issue": None}) is False
    assert has_comment({"comment": []}) is False


def test_issue_comment_shape_requires_both():
    predicates = REQUIRED_SHAPES[HandlerCategory.ISSUE_COMMENT]

    assert satisfies({"comment": {}, "issue": {}}, predicates)
    assert not satisfies({"comment": {}}, predicates)
    assert not satisfies({"issue": {}}, predicates)


def test_every_category_has_required_shape():
    assert set(REQUIRED_SHAPES) == set(HandlerCategory)
    assert satisfies({}, REQUIRED_SHAPES[HandlerCategory.PUSH])
