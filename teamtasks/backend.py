"""Generic data-access client.

Every page talks to the database through ``BackendClient.table(name)``, a small
query builder in the spirit of a hosted backend's REST client:

    res = client.table("tasks").select().eq("assigned_to", uid).order("due_date").execute()
    if res.error:
        logger.error("Error loading tasks: %s", res.error)
        return

Calls never raise for backend failures. They return a ``Result`` carrying
``data`` and an optional ``BackendError``; callers log and abort. Row-level
security from :mod:`teamtasks.policies` is applied to every statement using the
identity the client was created for.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from sqlalchemy import Date, DateTime, and_, delete as sa_delete, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from teamtasks.models import TABLES
from teamtasks.policies import policy_for


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BackendError:
    message: str
    code: str = "db_error"

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


@dataclass
class Result:
    data: Any = None
    error: Optional[BackendError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class _QueryError(Exception):
    def __init__(self, message: str, code: str):
        super().__init__(message)
        self.error = BackendError(message, code)


def _coerce_value(column, value: Any) -> Any:
    """Convert ISO strings to date/datetime for typed columns."""
    if value is None or not isinstance(value, str):
        if isinstance(value, datetime) and value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    try:
        if isinstance(column.type, DateTime):
            raw = value[:-1] if value.endswith("Z") else value
            parsed = datetime.fromisoformat(raw)
            if parsed.tzinfo is not None:
                parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
            return parsed
        if isinstance(column.type, Date):
            return date.fromisoformat(value[:10])
    except ValueError as exc:
        raise _QueryError(f"Invalid value for {column.key}: {value!r}", "invalid_value") from exc
    return value


class TableQuery:
    """Builder for one statement against one table; finish with execute()/single()/maybe_single()."""

    def __init__(self, client: "BackendClient", table: str):
        self._client = client
        self._table = table
        self._model = TABLES.get(table)
        self._policy = policy_for(table)
        self._op = "select"
        self._columns: Tuple[str, ...] = ()
        self._values: Any = None
        self._filters: List[Tuple[str, Any]] = []
        self._order: List[Tuple[str, bool]] = []
        self._limit: Optional[int] = None

    # ---------------- operations ----------------

    def select(self, *columns: str) -> "TableQuery":
        self._op = "select"
        self._columns = columns
        return self

    def insert(self, rows: Union[Mapping[str, Any], Sequence[Mapping[str, Any]]]) -> "TableQuery":
        self._op = "insert"
        self._values = [dict(rows)] if isinstance(rows, Mapping) else [dict(r) for r in rows]
        return self

    def update(self, values: Mapping[str, Any]) -> "TableQuery":
        self._op = "update"
        self._values = dict(values)
        return self

    def upsert(self, rows: Union[Mapping[str, Any], Sequence[Mapping[str, Any]]]) -> "TableQuery":
        self._op = "upsert"
        self._values = [dict(rows)] if isinstance(rows, Mapping) else [dict(r) for r in rows]
        return self

    def delete(self) -> "TableQuery":
        self._op = "delete"
        return self

    # ---------------- filters ----------------

    def eq(self, column: str, value: Any) -> "TableQuery":
        self._filters.append(("eq", (column, value)))
        return self

    def in_(self, column: str, values: Iterable[Any]) -> "TableQuery":
        self._filters.append(("in", (column, list(values))))
        return self

    def or_pairs(self, *groups: Mapping[str, Any]) -> "TableQuery":
        """Match rows satisfying any group, where a group is an AND of column == value."""
        self._filters.append(("or", [dict(g) for g in groups]))
        return self

    def order(self, column: str, *, ascending: bool = True) -> "TableQuery":
        self._order.append((column, ascending))
        return self

    def limit(self, n: int) -> "TableQuery":
        self._limit = max(0, int(n))
        return self

    # ---------------- execution ----------------

    def execute(self) -> Result:
        if self._model is None:
            return Result(error=BackendError(f"Unknown table: {self._table}", "unknown_table"))
        uid = self._client.user_id
        if not uid:
            return Result(error=BackendError("Not authenticated", "not_authenticated"))
        try:
            handler = getattr(self, f"_run_{self._op}")
            return Result(data=handler(uid))
        except _QueryError as exc:
            logger.debug("%s on %s rejected: %s", self._op, self._table, exc.error)
            return Result(error=exc.error)
        except SQLAlchemyError as exc:
            logger.debug("%s on %s failed", self._op, self._table, exc_info=True)
            return Result(error=BackendError(str(exc.__cause__ or exc), "db_error"))

    def single(self) -> Result:
        res = self.execute()
        if res.error:
            return res
        rows = res.data or []
        if len(rows) != 1:
            code = "not_found" if not rows else "multiple_rows"
            return Result(error=BackendError(f"Expected exactly one row, got {len(rows)}", code))
        return Result(data=rows[0])

    def maybe_single(self) -> Result:
        res = self.execute()
        if res.error:
            return res
        rows = res.data or []
        if len(rows) > 1:
            return Result(error=BackendError(f"Expected at most one row, got {len(rows)}", "multiple_rows"))
        return Result(data=rows[0] if rows else None)

    # ---------------- internals ----------------

    def _column(self, name: str):
        col = self._model.__table__.columns.get(name)
        if col is None:
            raise _QueryError(f"Unknown column {name!r} on {self._table}", "invalid_column")
        return col

    def _coerce_row(self, row: Mapping[str, Any]) -> Dict[str, Any]:
        return {k: _coerce_value(self._column(k), v) for k, v in row.items()}

    def _where(self):
        clauses = []
        for kind, arg in self._filters:
            if kind == "eq":
                column, value = arg
                clauses.append(self._column(column) == _coerce_value(self._column(column), value))
            elif kind == "in":
                column, values = arg
                col = self._column(column)
                clauses.append(col.in_([_coerce_value(col, v) for v in values]))
            elif kind == "or":
                groups = []
                for group in arg:
                    groups.append(and_(*[self._column(c) == _coerce_value(self._column(c), v) for c, v in group.items()]))
                clauses.append(or_(*groups))
        return clauses

    def _ordered(self, stmt):
        for column, ascending in self._order:
            col = self._column(column)
            stmt = stmt.order_by(col.asc() if ascending else col.desc())
        return stmt

    def _project(self, obj) -> Dict[str, Any]:
        d = obj.to_dict()
        if self._columns and self._columns != ("*",):
            for c in self._columns:
                self._column(c)
            d = {c: d[c] for c in self._columns}
        return d

    def _pk_values(self, row: Mapping[str, Any]) -> Optional[Tuple[Any, ...]]:
        keys = [c.key for c in self._model.__table__.primary_key.columns]
        if not all(row.get(k) is not None for k in keys):
            return None
        return tuple(row[k] for k in keys)

    def _pk_clause(self, pk: Tuple[Any, ...]):
        cols = list(self._model.__table__.primary_key.columns)
        return and_(*[c == v for c, v in zip(cols, pk)])

    @staticmethod
    def _row_state(obj) -> Dict[str, Any]:
        return {c.key: getattr(obj, c.key) for c in obj.__table__.columns}

    def _run_select(self, uid: str) -> List[Dict[str, Any]]:
        for c in self._columns:
            if c != "*":
                self._column(c)
        stmt = select(self._model).where(self._policy.select_clause(self._model, uid))
        for clause in self._where():
            stmt = stmt.where(clause)
        stmt = self._ordered(stmt)
        if self._limit is not None:
            stmt = stmt.limit(self._limit)
        with self._client.session() as s:
            rows = s.execute(stmt).scalars().all()
            return [self._project(r) for r in rows]

    def _run_insert(self, uid: str) -> List[Dict[str, Any]]:
        with self._client.session() as s:
            created = []
            for raw in self._values:
                values = self._coerce_row(raw)
                if not self._policy.can_insert(values, uid):
                    raise _QueryError(f"New row violates row-level security policy for table {self._table}", "rls_violation")
                obj = self._model(**values)
                s.add(obj)
                created.append(obj)
            s.commit()
            return [self._project(o) for o in created]

    def _run_update(self, uid: str) -> List[Dict[str, Any]]:
        values = self._coerce_row(self._values)
        stmt = select(self._model).where(self._policy.update_clause(self._model, uid))
        for clause in self._where():
            stmt = stmt.where(clause)
        with self._client.session() as s:
            rows = s.execute(stmt).scalars().all()
            for obj in rows:
                merged = {**self._row_state(obj), **values}
                if not self._policy.can_write_update(merged, uid):
                    raise _QueryError(f"Updated row violates row-level security policy for table {self._table}", "rls_violation")
                for k, v in values.items():
                    setattr(obj, k, v)
            s.commit()
            return [self._project(o) for o in rows]

    def _run_upsert(self, uid: str) -> List[Dict[str, Any]]:
        with self._client.session() as s:
            written = []
            for raw in self._values:
                values = self._coerce_row(raw)
                pk = self._pk_values(values)
                existing = s.get(self._model, pk) if pk is not None else None
                if existing is None:
                    if not self._policy.can_insert(values, uid):
                        raise _QueryError(f"New row violates row-level security policy for table {self._table}", "rls_violation")
                    obj = self._model(**values)
                    s.add(obj)
                else:
                    visible = s.execute(
                        select(self._model)
                        .where(self._pk_clause(pk))
                        .where(self._policy.update_clause(self._model, uid))
                    ).scalar_one_or_none()
                    merged = {**self._row_state(existing), **values}
                    if visible is None or not self._policy.can_write_update(merged, uid):
                        raise _QueryError(f"Upsert violates row-level security policy for table {self._table}", "rls_violation")
                    for k, v in values.items():
                        setattr(existing, k, v)
                    obj = existing
                written.append(obj)
            s.commit()
            return [self._project(o) for o in written]

    def _run_delete(self, uid: str) -> List[Dict[str, Any]]:
        stmt = select(self._model).where(self._policy.delete_clause(self._model, uid))
        for clause in self._where():
            stmt = stmt.where(clause)
        with self._client.session() as s:
            rows = s.execute(stmt).scalars().all()
            deleted = [self._project(r) for r in rows]
            if rows:
                # Bulk DELETE so the database applies ON DELETE CASCADE to child rows.
                pk_cols = list(self._model.__table__.primary_key.columns)
                ids = [getattr(r, pk_cols[0].key) for r in rows]
                s.execute(
                    sa_delete(self._model)
                    .where(pk_cols[0].in_(ids))
                    .execution_options(synchronize_session=False)
                )
            s.commit()
            return deleted


class BackendClient:
    """Data-access client bound to one authenticated identity (or none)."""

    def __init__(self, sessionmaker_: sessionmaker, user_id: Optional[str] = None):
        self._sessionmaker = sessionmaker_
        self.user_id = user_id

    def session(self):
        return self._sessionmaker()

    def table(self, name: str) -> TableQuery:
        return TableQuery(self, name)
