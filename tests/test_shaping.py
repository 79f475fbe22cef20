import pytest

from conftest import (ACCOUNT_PAYLOAD, ADD_ACTIVITY_PAYLOAD, INSPECTION_PAYLOAD,
                      LICENSE_PAYLOAD, STAMP_PAYLOAD)
from request_ingestor.classifier import ClassifiedRecord
from request_ingestor.errors import ShapeMismatch
from request_ingestor.schema import detail_schema_for
from request_ingestor.serialization import (decode_structured,
                                            encode_structured, normalize_date)
from request_ingestor.shaping import shape_payload


def _shape(type_code, payload, request_id=1):
    record = ClassifiedRecord(request_id=request_id, type_code=type_code, payload=payload)
    return shape_payload(record, detail_schema_for(type_code))


def test_new_license_is_shaped_in_column_order():
    values = _shape(1, LICENSE_PAYLOAD)

    assert values == (
        "Acme Trading",
        "Commercial",
        True,
        "Head Office",
        "OS-100",
        "2024-01-15",
        '["Import","Export","Wholesale"]',
    )


def test_account_permissions_are_stored_as_canonical_json():
    values = _shape(2, ACCOUNT_PAYLOAD)

    assert values[-1] == '{"approve":false,"submit":true,"view":true}'


def test_numeric_licence_id_is_stored_as_text():
    assert _shape(5, STAMP_PAYLOAD) == ("Acme Trading", "42", "2024-03-05")


def test_boolean_strings_are_accepted_for_is_office():
    payload = dict(LICENSE_PAYLOAD, IsOffice="false", OfficeName=None)

    values = _shape(1, payload)

    assert values[2] is False
    assert values[3] is None


def test_activities_given_as_json_text_are_decoded():
    payload = dict(ADD_ACTIVITY_PAYLOAD, Activities='["Retail", "Repair"]')

    assert _shape(4, payload)[-1] == '["Retail","Repair"]'


def test_missing_field_raises_shape_mismatch():
    payload = {k: v for k, v in INSPECTION_PAYLOAD.items() if k != "InspectionDate"}

    with pytest.raises(ShapeMismatch) as excinfo:
        _shape(3, payload, request_id=3)

    assert "InspectionDate" in str(excinfo.value)
    assert excinfo.value.request_id == 3
    assert excinfo.value.type_code == 3


def test_office_fields_must_be_present_even_if_null():
    payload = {k: v for k, v in LICENSE_PAYLOAD.items() if k != "OfficeName"}

    with pytest.raises(ShapeMismatch, match="OfficeName"):
        _shape(1, payload)


def test_wrong_value_type_raises_shape_mismatch():
    payload = dict(ADD_ACTIVITY_PAYLOAD, Activities={"not": "a list"})

    with pytest.raises(ShapeMismatch, match="invalid"):
        _shape(4, payload)


def test_activities_round_trip_preserves_order():
    activities = ["Zeta", "Alpha", {"code": "M1", "label": "Mining"}, "Beta"]

    assert decode_structured(encode_structured(activities)) == activities


def test_permissions_round_trip_preserves_keys():
    permissions = {"view": True, "approve": False, "roles": ["admin", "clerk"]}

    decoded = decode_structured(encode_structured(permissions))

    assert decoded == permissions
    assert set(decoded) == set(permissions)


def test_encoding_is_stable_for_equal_mappings():
    assert encode_structured({"b": 1, "a": 2}) == encode_structured({"a": 2, "b": 1})


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("2024-03-05", "2024-03-05"),
        ("2024-03-05T09:15:00Z", "2024-03-05"),
        ("2024-03-05 09:15", "2024-03-05"),
        ("2024-05", "2024-05"),
        ("7", "7"),
        ("05/03/2024", "05/03/2024"),
        ("March 5, 2024", "March 5, 2024"),
        ("20240305", "20240305"),
        ("pending", "pending"),
        ("", ""),
        (None, None),
    ],
)
def test_normalize_date(raw, expected):
    assert normalize_date(raw) == expected


@pytest.mark.parametrize("raw", ["2024-05", "7", "05/03/2024"])
def test_partial_or_ambiguous_dates_are_stored_as_given(raw):
    assert _shape(5, dict(STAMP_PAYLOAD, RequestDate=raw))[2] == raw
    assert _shape(3, dict(INSPECTION_PAYLOAD, InspectionDate=raw))[1] == raw
