"""
Shared query helpers for the owner-scoped record services.

Every helper here takes the owner id explicitly and applies it last, so a
caller-supplied filter can never widen the scope beyond the requesting user.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Type

from pydantic import BaseModel, field_validator
from sqlalchemy import and_, asc, desc, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session

from app.core.config import settings

logger = logging.getLogger(__name__)


class ListParams(BaseModel):
    """Common list parameters. Out-of-range page/limit are clamped, not rejected."""

    page: int = 1
    limit: int = settings.default_page_size
    search: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    sort_by: Optional[str] = None
    sort_order: str = "desc"

    @field_validator("page", mode="before")
    @classmethod
    def _clamp_page(cls, v: Any) -> int:
        if v is None:
            return 1
        return max(1, int(v))

    @field_validator("limit", mode="before")
    @classmethod
    def _clamp_limit(cls, v: Any) -> int:
        if v is None:
            return settings.default_page_size
        return min(settings.max_page_size, max(1, int(v)))

    @field_validator("sort_order", mode="before")
    @classmethod
    def _normalize_order(cls, v: Any) -> str:
        if isinstance(v, str) and v.lower() == "asc":
            return "asc"
        return "desc"

    @field_validator("search", mode="before")
    @classmethod
    def _blank_search(cls, v: Any) -> Optional[str]:
        if isinstance(v, str) and not v.strip():
            return None
        return v


@dataclass
class Page:
    items: List[Any]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.total else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        # An empty result has no neighbours, whatever page was asked for
        return self.total > 0 and self.page > 1

    def pagination(self) -> Dict[str, Any]:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "totalPages": self.total_pages,
            "hasNext": self.has_next,
            "hasPrev": self.has_prev,
        }


@dataclass
class ListSpec:
    """Per-entity description of what a list query may touch."""

    model: Type
    search_columns: List[Any]
    date_column: Any
    sort_columns: Dict[str, Any]
    default_sort: str
    extra_filters: List[Any] = field(default_factory=list)


def search_clause(columns: Iterable[Any], term: str):
    # % and _ in the term match literally
    return or_(*[column.icontains(term, autoescape=True) for column in columns])


def date_range_clause(column, start: Optional[datetime], end: Optional[datetime]):
    """Inclusive range, applied only when both bounds are present."""
    if start is None or end is None:
        return None
    return and_(column >= start, column <= end)


def build_filters(owner_id, spec: ListSpec, params: ListParams) -> List[Any]:
    clauses = list(spec.extra_filters)

    if params.search:
        clauses.append(search_clause(spec.search_columns, params.search))

    date_clause = date_range_clause(spec.date_column, params.start_date, params.end_date)
    if date_clause is not None:
        clauses.append(date_clause)

    clauses.append(spec.model.user_id == owner_id)
    return clauses


def apply_sort(query: Query, spec: ListSpec, params: ListParams) -> Query:
    column = spec.sort_columns.get(params.sort_by or "", spec.sort_columns[spec.default_sort])
    direction = asc if params.sort_order == "asc" else desc
    # id breaks ties so pages never overlap
    return query.order_by(direction(column), direction(spec.model.id))


def paginate(db: Session, owner_id, spec: ListSpec, params: ListParams) -> Page:
    query = db.query(spec.model).filter(*build_filters(owner_id, spec, params))

    total = query.count()
    if total == 0:
        return Page(items=[], total=0, page=params.page, limit=params.limit)

    offset = (params.page - 1) * params.limit
    items = apply_sort(query, spec, params).offset(offset).limit(params.limit).all()
    return Page(items=items, total=total, page=params.page, limit=params.limit)


def get_owned(db: Session, model: Type, owner_id, record_id):
    return db.query(model).filter(model.id == record_id, model.user_id == owner_id).first()


def find_by_key(db: Session, model: Type, owner_id, key_column, key_value):
    return db.query(model).filter(model.user_id == owner_id, key_column == key_value).first()


def insert_or_return_existing(db: Session, record, key_column, key_value) -> Tuple[Any, bool]:
    """
    Insert ``record``; if the storage uniqueness constraint rejects it because
    a concurrent request won, return the stored row instead.
    """
    model = type(record)
    owner_id = record.user_id
    db.add(record)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        existing = find_by_key(db, model, owner_id, key_column, key_value)
        if existing is None:
            # Constraint violation unrelated to the uniqueness key
            raise
        logger.info(f"Concurrent duplicate for {model.__tablename__}, returning existing {existing.id}")
        return existing, False

    db.refresh(record)
    return record, True


def create_or_return(
    db: Session,
    model: Type,
    owner_id,
    key_column,
    key_value,
    factory: Callable[[], Any],
) -> Tuple[Any, bool]:
    existing = find_by_key(db, model, owner_id, key_column, key_value)
    if existing is not None:
        return existing, False
    return insert_or_return_existing(db, factory(), key_column, key_value)


def apply_partial_update(
    record,
    changes: Dict[str, Any],
    encoders: Optional[Dict[str, Callable[[Any], Any]]] = None,
    attribute_map: Optional[Dict[str, str]] = None,
) -> List[str]:
    """Write every key present in ``changes``, including empty strings and None."""
    encoders = encoders or {}
    attribute_map = attribute_map or {}
    written = []
    for name, value in changes.items():
        if name in encoders:
            value = encoders[name](value)
        setattr(record, attribute_map.get(name, name), value)
        written.append(name)
    return written


def bulk_delete_owned(db: Session, model: Type, owner_id, record_ids: List[Any]) -> int:
    if not record_ids:
        return 0
    deleted = (
        db.query(model)
        .filter(model.id.in_(record_ids), model.user_id == owner_id)
        .delete(synchronize_session=False)
    )
    db.commit()
    return deleted


def count_owned(db: Session, model: Type, owner_id, *clauses) -> int:
    return (
        db.query(func.count(model.id))
        .filter(model.user_id == owner_id, *clauses)
        .scalar()
    ) or 0


def top_values(db: Session, model: Type, owner_id, column, limit: int) -> List[Tuple[Any, int]]:
    count = func.count(model.id)
    rows = (
        db.query(column, count)
        .filter(model.user_id == owner_id)
        .group_by(column)
        .order_by(count.desc())
        .limit(limit)
        .all()
    )
    return [(value, n) for value, n in rows]


def most_recent(db: Session, model: Type, owner_id, column, limit: int) -> List[Any]:
    return (
        db.query(model)
        .filter(model.user_id == owner_id)
        .order_by(column.desc())
        .limit(limit)
        .all()
    )
