"""
Tests for the consolidator.
"""

from identity_reconciliation.linkage.consolidator import consolidate
from tests.conftest import make_contact, ts


class TestConsolidate:
    """Tests for consolidate."""

    def test_single_contact(self):
        a = make_contact(1, email="a@x.io", phone="111")

        result = consolidate([a], a)

        assert result.primary_contact_id == 1
        assert result.emails == ["a@x.io"]
        assert result.phone_numbers == ["111"]
        assert result.secondary_contact_ids == []

    def test_primary_without_phone(self):
        a = make_contact(1, email="a@x.io")

        result = consolidate([a], a)

        assert result.phone_numbers == []

    def test_deduplicates_values(self):
        a = make_contact(1, email="a@x.io", phone="111", created_at=ts(1))
        s1 = make_contact(2, email="a@x.io", phone="222", precedence="secondary", linked_id=1, created_at=ts(2))
        s2 = make_contact(3, email="b@x.io", phone="111", precedence="secondary", linked_id=1, created_at=ts(3))

        result = consolidate([a, s1, s2], a)

        assert result.emails == ["a@x.io", "b@x.io"]
        assert result.phone_numbers == ["111", "222"]
        assert result.secondary_contact_ids == [2, 3]

    def test_primary_values_forced_first(self):
        """Primary's own values lead even when older contacts carry other values."""
        early = make_contact(2, email="early@x.io", phone="000", precedence="secondary", linked_id=5, created_at=ts(1))
        primary = make_contact(5, email="p@x.io", phone="555", created_at=ts(2))
        late = make_contact(7, email="late@x.io", precedence="secondary", linked_id=5, created_at=ts(3))

        result = consolidate([late, primary, early], primary)

        assert result.emails == ["p@x.io", "early@x.io", "late@x.io"]
        assert result.phone_numbers == ["555", "000"]
        assert result.secondary_contact_ids == [2, 7]

    def test_rest_in_creation_order(self):
        a = make_contact(1, email="a@x.io", created_at=ts(1))
        s3 = make_contact(3, email="c@x.io", precedence="secondary", linked_id=1, created_at=ts(3))
        s2 = make_contact(2, email="b@x.io", precedence="secondary", linked_id=1, created_at=ts(2))

        result = consolidate([s3, a, s2], a)

        assert result.emails == ["a@x.io", "b@x.io", "c@x.io"]
        assert result.secondary_contact_ids == [2, 3]

    def test_skips_empty_values(self):
        a = make_contact(1, email="a@x.io", phone="", created_at=ts(1))
        s = make_contact(2, email=None, phone="111", precedence="secondary", linked_id=1, created_at=ts(2))

        result = consolidate([a, s], a)

        assert result.emails == ["a@x.io"]
        assert result.phone_numbers == ["111"]

    def test_to_dict_shape(self):
        a = make_contact(1, email="a@x.io", phone="111")

        body = consolidate([a], a).to_dict()

        assert body == {
            "contact": {
                "primaryContactId": 1,
                "emails": ["a@x.io"],
                "phoneNumbers": ["111"],
                "secondaryContactIds": [],
            }
        }
