"""Tests for row -> record mapping."""

from datetime import date, datetime

from kam_hub.portfolio import Drive, DriveData, Restaurant, ConversionTrackingEntry
from kam_hub.portfolio.constants import STATUS_APPROACHED, STATUS_CONVERTED, STATUS_NOT_APPROACHED


def test_drive_from_prefixed_row():
    row = {
        'drive__id': '3',
        'drive__drive_name': 'MRP February',
        'drive__drive_type': 'MRP',
        'drive__start_date': '2025-02-01',
        'drive__end_date': None,
        'drive__status': 'active',
    }

    drive = Drive.from_row(row, prefix='drive__')

    assert drive.id == 3
    assert drive.start_date == date(2025, 2, 1)
    assert drive.end_date is None
    assert drive.is_active


def test_drive_accepts_native_types():
    drive = Drive.from_row({
        'id': 1, 'drive_name': 'NCN', 'start_date': datetime(2025, 1, 1, 10, 0),
        'created_at': datetime(2024, 9, 1), 'status': 'completed',
    })

    assert drive.start_date == date(2025, 1, 1)
    assert drive.created_at == datetime(2024, 9, 1)
    assert not drive.is_active


def test_drive_data_null_flags_read_false():
    row = DriveData.from_row({'id': 7, 'res_id': 'R1', 'drive_id': 2,
                              'approached': None, 'converted_stepper': None})

    assert row.approached is False
    assert row.converted_stepper is False
    assert row.status == STATUS_NOT_APPROACHED
    assert row.drive_name is None


def test_drive_data_status():
    approached = DriveData(id=1, res_id='R1', drive_id=1, approached=True)
    converted = DriveData(id=2, res_id='R1', drive_id=2, approached=True, converted_stepper=True)

    assert approached.status == STATUS_APPROACHED
    assert converted.status == STATUS_CONVERTED


def test_drive_data_string_flags():
    row = DriveData.from_row({'id': 1, 'res_id': 'R1', 'drive_id': 1,
                              'approached': 'true', 'converted_stepper': '0'})

    assert row.approached is True
    assert row.converted_stepper is False


def test_restaurant_counts_and_lookup():
    restaurant = Restaurant(res_id='R1', res_name='Biryani House', drive_data=[
        DriveData(id=1, res_id='R1', drive_id=1, approached=True, converted_stepper=True),
        DriveData(id=2, res_id='R1', drive_id=2, approached=True),
        DriveData(id=3, res_id='R1', drive_id=3),
    ])

    assert restaurant.approached_count == 2
    assert restaurant.converted_count == 1
    assert restaurant.get_drive_data(2).id == 2
    assert restaurant.get_drive_data(9) is None
    assert restaurant.to_dict()['drive_data'][0]['drive_id'] == 1


def test_restaurant_from_row_optional_fields():
    restaurant = Restaurant.from_row({'res_id': 'R9', 'res_name': 'Idli Corner', 'sept_ov': '1500'})

    assert restaurant.sept_ov == 1500.0
    assert restaurant.kam_email is None
    assert restaurant.drive_data == []


def test_conversion_tracking_from_row():
    entry = ConversionTrackingEntry.from_row({
        'id': 4, 'res_id': 'R1', 'drive_id': '5', 'kam_email': 'asha@zomato.com',
        'action_type': 'converted', 'action_date': '2025-03-15T09:30:00+00:00',
    })

    assert entry.drive_id == 5
    assert entry.action_date.year == 2025
    assert entry.notes is None
