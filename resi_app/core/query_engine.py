"""Filtered list queries shared by every resource.

A request's query string is split into free-text search, pagination, sort,
projection and equality filters, then translated into one bounded page query
and one unbounded count query against the entity's table. Bad input never
raises: pagination falls back to defaults, unknown filter or sort keys are
ignored, and filter values that cannot be coerced to the column type match
nothing.
"""

import logging
import math
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from dateutil.parser import isoparse
from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    Float,
    Integer,
    Numeric,
    String,
    Uuid,
    cast,
    false,
    func,
    or_,
    select,
)
from sqlalchemy.ext.asyncio import AsyncSession

from resi_app.models.utils import camel_to_snake

from .date_helper import to_naive_utc

logger = logging.getLogger(__name__)

RESERVED_KEYS = ("query", "page", "limit", "sort", "fields")
DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100
DEFAULT_SORT = "-createdAt"


def _positive_int(value: Any, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number >= 1 else default


@dataclass
class ListParams:
    query: Optional[str] = None
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT
    sort: str = DEFAULT_SORT
    fields: List[str] = field(default_factory=list)
    filters: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_query(cls, params: Mapping[str, Any]) -> "ListParams":
        query = (params.get("query") or "").strip() or None
        page = _positive_int(params.get("page"), DEFAULT_PAGE)
        limit = min(_positive_int(params.get("limit"), DEFAULT_LIMIT), MAX_LIMIT)
        sort = (params.get("sort") or "").strip() or DEFAULT_SORT
        fields = [
            f.strip() for f in (params.get("fields") or "").split(",") if f.strip()
        ]
        filters = {
            key: value
            for key, value in params.items()
            if key not in RESERVED_KEYS and value not in (None, "")
        }
        return cls(query, page, limit, sort, fields, filters)

    def cache_shape(self) -> dict:
        return {
            "query": self.query,
            "page": self.page,
            "limit": self.limit,
            "sort": self.sort,
            "fields": self.fields,
            **self.filters,
        }


@dataclass
class EntityDescriptor:
    """What the engine needs to know about one entity type."""

    name: str
    model: Any
    search_columns: Sequence[str]
    filter_aliases: Mapping[str, str] = field(default_factory=dict)
    load_options: Sequence[Any] = field(default_factory=tuple)
    tenant_scoped: bool = True
    hidden_columns: Sequence[str] = field(default_factory=tuple)

    def column(self, public_name: str):
        """Map a public (camelCase or dotted) name onto a mapped column."""
        name = self.filter_aliases.get(public_name)
        if name is None:
            name = camel_to_snake(public_name.split(".")[-1])
        table_columns = self.model.__table__.columns
        for candidate in (name, f"{name}_id"):
            if candidate in self.hidden_columns:
                return None
            if candidate in table_columns:
                return getattr(self.model, candidate)
        return None


def _enum_member(raw: str, enum_cls):
    """Match a query value against an enum's values or names, ignoring case."""
    text = str(raw).strip().lower()
    for member in enum_cls:
        if text in (str(member.value).lower(), member.name.lower()):
            return member
    allowed = ", ".join(str(m.value) for m in enum_cls)
    raise ValueError(f"Invalid {enum_cls.__name__}: {raw}. Allowed values: {allowed}")


def _coerce(column, raw: str):
    """Return the typed value for an equality filter; raise ValueError if impossible."""
    col_type = column.type
    if isinstance(col_type, Enum) and col_type.enum_class is not None:
        return _enum_member(raw, col_type.enum_class)
    if isinstance(col_type, Boolean):
        lowered = str(raw).lower()
        if lowered in ("true", "1", "yes"):
            return True
        if lowered in ("false", "0", "no"):
            return False
        raise ValueError(f"Invalid boolean: {raw}")
    if isinstance(col_type, Integer):
        return int(raw)
    if isinstance(col_type, (Float, Numeric)):
        return float(raw)
    if isinstance(col_type, Uuid):
        return uuid.UUID(str(raw))
    if isinstance(col_type, DateTime):
        return to_naive_utc(isoparse(str(raw)))
    return str(raw)


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def contains_clause(column, term: str):
    return column.ilike(f"%{_escape_like(term)}%", escape="\\")


def json_member_clause(column, value: str):
    """Membership test on a JSON list column, portable across backends."""
    return cast(column, String).like(f'%"{_escape_like(value)}"%', escape="\\")


def build_filter_clauses(
    descriptor: EntityDescriptor,
    params: ListParams,
    tenant_id: Optional[uuid.UUID],
) -> List[Any]:
    model = descriptor.model
    clauses: List[Any] = []

    if descriptor.tenant_scoped:
        clauses.append(model.tenant_id == tenant_id)

    if params.query:
        columns = [getattr(model, name) for name in descriptor.search_columns]
        clauses.append(or_(*(contains_clause(col, params.query) for col in columns)))

    active_filtered = False
    for key, raw in params.filters.items():
        column = descriptor.column(key)
        if column is None or (descriptor.tenant_scoped and column.key == "tenant_id"):
            continue
        if column.key == "is_active":
            active_filtered = True
        if isinstance(column.type, JSON):
            clauses.append(json_member_clause(column, str(raw)))
            continue
        try:
            value = _coerce(column, raw)
        except (ValueError, TypeError, OverflowError):
            logger.debug("Filter %s=%r does not fit column %s", key, raw, column.key)
            clauses.append(false())
            continue
        clauses.append(column == value)

    if not active_filtered:
        clauses.append(model.is_active.is_(True))

    return clauses


def build_order_by(descriptor: EntityDescriptor, sort: str) -> List[Any]:
    order = []
    for part in (p.strip() for p in sort.split(",")):
        if not part:
            continue
        descending = part.startswith("-")
        column = descriptor.column(part.lstrip("-+"))
        if column is None:
            continue
        order.append(column.desc() if descending else column.asc())
    if not order:
        order.append(descriptor.model.created_at.desc())
    order.append(descriptor.model.id.asc())
    return order


def pagination_meta(page: int, limit: int, total: int) -> dict:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": math.ceil(total / limit) if limit else 0,
    }


async def run_filtered_query(
    db: AsyncSession,
    descriptor: EntityDescriptor,
    params: ListParams,
    tenant_id: Optional[uuid.UUID] = None,
    extra_clauses: Iterable[Any] = (),
) -> Tuple[list, dict]:
    clauses = build_filter_clauses(descriptor, params, tenant_id) + list(extra_clauses)

    stmt = (
        select(descriptor.model)
        .where(*clauses)
        .order_by(*build_order_by(descriptor, params.sort))
        .offset((params.page - 1) * params.limit)
        .limit(params.limit)
    )
    if descriptor.load_options:
        stmt = stmt.options(*descriptor.load_options)

    items = list((await db.execute(stmt)).scalars().all())

    count_stmt = select(func.count()).select_from(descriptor.model).where(*clauses)
    total = (await db.execute(count_stmt)).scalar_one()

    return items, pagination_meta(params.page, params.limit, total)


def project(item: dict, fields: Sequence[str]) -> dict:
    if not fields:
        return item
    wanted = {f.split(".")[0] for f in fields} | {"id"}
    return {key: value for key, value in item.items() if key in wanted}
