import pytest

from app.core.enums import AgeGroup
from app.services.transform import classify_age, resolve_unit_type_id, transform_payload


class TestTransformPayload:

    def test_wire_schema(self, valid_rate_request, unit_catalog):
        vendor_request = transform_payload(valid_rate_request, unit_catalog)

        assert vendor_request.to_wire() == {
            "Unit Type ID": -2147483637,
            "Arrival": "2024-01-25",
            "Departure": "2024-01-28",
            "Guests": [{"Age Group": "Adult"}, {"Age Group": "Adult"}],
        }

    def test_guest_order_mirrors_ages(self, valid_rate_request, unit_catalog):
        valid_rate_request["Occupants"] = 5
        valid_rate_request["Ages"] = [8, 40, 17, 18, 1]

        guests = transform_payload(valid_rate_request, unit_catalog).guests

        assert [g.age_group for g in guests] == [
            AgeGroup.CHILD, AgeGroup.ADULT, AgeGroup.CHILD, AgeGroup.ADULT, AgeGroup.CHILD,
        ]

    def test_deluxe_unit_code(self, valid_rate_request, unit_catalog):
        valid_rate_request["Unit Name"] = "Deluxe Unit"
        assert transform_payload(valid_rate_request, unit_catalog).unit_type_id == -2147483456


class TestHelpers:

    @pytest.mark.parametrize("age,expected", [
        (0, AgeGroup.CHILD),
        (17, AgeGroup.CHILD),
        (17.9, AgeGroup.CHILD),
        (18, AgeGroup.ADULT),
        ("21", AgeGroup.ADULT),
        (150, AgeGroup.ADULT),
    ])
    def test_classify_age(self, age, expected):
        assert classify_age(age) == expected

    def test_unknown_unit_falls_back_to_first_entry(self, unit_catalog):
        assert resolve_unit_type_id("Penthouse", unit_catalog) == -2147483637

    def test_fallback_follows_catalog_order(self):
        catalog = {"Deluxe Unit": 2, "Standard Unit": 1}
        assert resolve_unit_type_id("Penthouse", catalog) == 2
