"""
Typed records for the restaurant portfolio.

Restaurant -> DriveData -> Drive nesting is represented by composed
dataclasses instead of nested dicts. Rows come from SQLAlchemy result
mappings; `from_row` handles both native driver types (Postgres) and the
string/int encodings sqlite hands back.
"""

from dataclasses import dataclass, field, asdict
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd

from .constants import (
    DRIVE_STATUS_ACTIVE,
    STATUS_NOT_APPROACHED,
    STATUS_APPROACHED,
    STATUS_CONVERTED,
)

RESTAURANT_FIELDS = [
    'res_id', 'res_name', 'kam_name', 'kam_email', 'tl_email', 'cuisine',
    'locality', 'concat_field', 'account_type', 'sept_ov', 'created_at',
    'updated_at',
]

DRIVE_FIELDS = [
    'id', 'drive_name', 'drive_type', 'city', 'start_date', 'end_date',
    'status', 'created_at',
]

DRIVE_DATA_FIELDS = [
    'id', 'res_id', 'drive_id', 'la', 'mm', 'um',
    'la_base_code_suggested', 'la_step1', 'la_step2', 'la_step3',
    'mm_base_code_suggested', 'um_base_code_suggested',
    'la_active_promos', 'mm_active_promos', 'um_active_promos',
    'approached', 'converted_stepper', 'priority_score', 'last_updated',
]

CONVERSION_TRACKING_FIELDS = [
    'id', 'res_id', 'drive_id', 'kam_email', 'action_type', 'action_date',
    'notes', 'created_at',
]


# =============================================================================
# VALUE COERCION
# =============================================================================

def _to_bool(value: Any) -> bool:
    """NULL flags read as False"""
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 't', 'yes')
    return bool(value)


def _to_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    return float(value)


def _to_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    return int(value)


def _to_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value
    return pd.Timestamp(value).to_pydatetime()


def _to_date(value: Any) -> Optional[date]:
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return pd.Timestamp(value).date()


def _pick(row: Mapping[str, Any], prefix: str, name: str) -> Any:
    return row.get(f"{prefix}{name}")


# =============================================================================
# RECORDS
# =============================================================================

@dataclass
class Drive:
    """A time-boxed promotional campaign (NCN, N2R, MRP, ...)"""
    id: int
    drive_name: str
    drive_type: Optional[str] = None
    city: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == DRIVE_STATUS_ACTIVE

    @classmethod
    def from_row(cls, row: Mapping[str, Any], prefix: str = '') -> 'Drive':
        return cls(
            id=int(_pick(row, prefix, 'id')),
            drive_name=_pick(row, prefix, 'drive_name'),
            drive_type=_pick(row, prefix, 'drive_type'),
            city=_pick(row, prefix, 'city'),
            start_date=_to_date(_pick(row, prefix, 'start_date')),
            end_date=_to_date(_pick(row, prefix, 'end_date')),
            status=_pick(row, prefix, 'status'),
            created_at=_to_datetime(_pick(row, prefix, 'created_at')),
        )


@dataclass
class DriveData:
    """Fact row linking one restaurant to one drive"""
    id: int
    res_id: Optional[str]
    drive_id: Optional[int]
    la: Optional[float] = None
    mm: Optional[float] = None
    um: Optional[float] = None
    la_base_code_suggested: Optional[str] = None
    la_step1: Optional[str] = None
    la_step2: Optional[str] = None
    la_step3: Optional[str] = None
    mm_base_code_suggested: Optional[str] = None
    um_base_code_suggested: Optional[str] = None
    la_active_promos: Optional[str] = None
    mm_active_promos: Optional[str] = None
    um_active_promos: Optional[str] = None
    approached: bool = False
    converted_stepper: bool = False
    priority_score: Optional[float] = None
    last_updated: Optional[datetime] = None
    drive: Optional[Drive] = None

    @property
    def status(self) -> str:
        """NOT_APPROACHED -> APPROACHED -> CONVERTED"""
        if self.converted_stepper:
            return STATUS_CONVERTED
        if self.approached:
            return STATUS_APPROACHED
        return STATUS_NOT_APPROACHED

    @property
    def drive_name(self) -> Optional[str]:
        return self.drive.drive_name if self.drive else None

    @classmethod
    def from_row(cls, row: Mapping[str, Any], prefix: str = '',
                 drive: Optional[Drive] = None) -> 'DriveData':
        return cls(
            id=int(_pick(row, prefix, 'id')),
            res_id=_pick(row, prefix, 'res_id'),
            drive_id=_to_int(_pick(row, prefix, 'drive_id')),
            la=_to_float(_pick(row, prefix, 'la')),
            mm=_to_float(_pick(row, prefix, 'mm')),
            um=_to_float(_pick(row, prefix, 'um')),
            la_base_code_suggested=_pick(row, prefix, 'la_base_code_suggested'),
            la_step1=_pick(row, prefix, 'la_step1'),
            la_step2=_pick(row, prefix, 'la_step2'),
            la_step3=_pick(row, prefix, 'la_step3'),
            mm_base_code_suggested=_pick(row, prefix, 'mm_base_code_suggested'),
            um_base_code_suggested=_pick(row, prefix, 'um_base_code_suggested'),
            la_active_promos=_pick(row, prefix, 'la_active_promos'),
            mm_active_promos=_pick(row, prefix, 'mm_active_promos'),
            um_active_promos=_pick(row, prefix, 'um_active_promos'),
            approached=_to_bool(_pick(row, prefix, 'approached')),
            converted_stepper=_to_bool(_pick(row, prefix, 'converted_stepper')),
            priority_score=_to_float(_pick(row, prefix, 'priority_score')),
            last_updated=_to_datetime(_pick(row, prefix, 'last_updated')),
            drive=drive,
        )


@dataclass
class Restaurant:
    """A restaurant in a KAM's portfolio, with its drive data"""
    res_id: str
    res_name: str
    kam_name: Optional[str] = None
    kam_email: Optional[str] = None
    tl_email: Optional[str] = None
    cuisine: Optional[str] = None
    locality: Optional[str] = None
    concat_field: Optional[str] = None
    account_type: Optional[str] = None
    sept_ov: Optional[float] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    drive_data: List[DriveData] = field(default_factory=list)

    def get_drive_data(self, drive_id: int) -> Optional[DriveData]:
        for row in self.drive_data:
            if row.drive_id == drive_id:
                return row
        return None

    @property
    def approached_count(self) -> int:
        return sum(1 for row in self.drive_data if row.approached)

    @property
    def converted_count(self) -> int:
        return sum(1 for row in self.drive_data if row.converted_stepper)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> 'Restaurant':
        return cls(
            res_id=row['res_id'],
            res_name=row['res_name'],
            kam_name=row.get('kam_name'),
            kam_email=row.get('kam_email'),
            tl_email=row.get('tl_email'),
            cuisine=row.get('cuisine'),
            locality=row.get('locality'),
            concat_field=row.get('concat_field'),
            account_type=row.get('account_type'),
            sept_ov=_to_float(row.get('sept_ov')),
            created_at=_to_datetime(row.get('created_at')),
            updated_at=_to_datetime(row.get('updated_at')),
        )


@dataclass
class ConversionTrackingEntry:
    """Append-only audit record of a KAM action"""
    id: Optional[int]
    res_id: str
    drive_id: int
    kam_email: str
    action_type: str
    action_date: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> 'ConversionTrackingEntry':
        return cls(
            id=_to_int(row.get('id')),
            res_id=row.get('res_id'),
            drive_id=_to_int(row.get('drive_id')),
            kam_email=row.get('kam_email'),
            action_type=row.get('action_type'),
            action_date=_to_datetime(row.get('action_date')),
            notes=row.get('notes'),
            created_at=_to_datetime(row.get('created_at')),
        )
