"""Schema compatibility resolver for response tables.

Response tables exist in two physical shapes: the legacy one with descriptive
column names (``question_id``, ``survey_id``, ``category``) and the current one
with shortened names (``gqid``/``qid``, ``gsid``/``osid``, ``cid``). The
resolver inspects the live table and hands back a Core table construct keyed by
logical field names, so stores never branch on physical names.
"""
import logging
from dataclasses import dataclass, field

import sqlalchemy as sa
from sqlalchemy import inspect
from sqlalchemy.exc import NoSuchTableError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.expression import ColumnClause, TableClause
from sqlalchemy.types import TypeEngine

from survey_backend.models.base import JSONArray
from survey_backend.utils.exceptions import SchemaError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ColumnPair:
    """Logical field with its legacy and shortened physical names."""

    logical: str
    legacy: str
    current: str
    type_: TypeEngine = field(default_factory=sa.Integer)


@dataclass(frozen=True)
class TableSpec:
    """Response table description: resolvable pairs plus fixed-name columns."""

    name: str
    pairs: tuple[ColumnPair, ...]
    fixed: tuple[tuple[str, TypeEngine], ...] = ()


class ResolvedTable:
    """Core table whose columns are addressed by logical name."""

    def __init__(self, spec: TableSpec, physical: dict[str, str]):
        self.spec = spec
        self.physical = dict(physical)
        columns = [sa.column(physical[pair.logical], pair.type_) for pair in spec.pairs]
        columns.extend(sa.column(name, type_) for name, type_ in spec.fixed)
        self.table: TableClause = sa.table(spec.name, *columns)

    @property
    def uses_legacy_names(self) -> bool:
        return any(self.physical[pair.logical] == pair.legacy for pair in self.spec.pairs)

    def c(self, logical: str) -> ColumnClause:
        """Column for a logical field, or a fixed column by its own name."""
        return self.table.c[self.physical.get(logical, logical)]

    def labeled(self, name: str):
        """Column labeled with its logical name for result mappings."""
        return self.c(name).label(name)

    def values(self, **logical) -> dict:
        """Translate logical field names to physical ones for insert/update values."""
        return {self.physical.get(name, name): value for name, value in logical.items()}

    def raw(self, name: str):
        """Column read as undecoded text so corrupt JSON reaches the normalizer intact."""
        return sa.type_coerce(self.c(name), sa.Text()).label(name)

    def __repr__(self) -> str:
        return f"<ResolvedTable({self.spec.name}, {self.physical})>"


_TIMESTAMPS = (
    ("created_at", sa.DateTime(timezone=True)),
    ("updated_at", sa.DateTime(timezone=True)),
)

GROWTH_RESPONSES = TableSpec(
    name="growth_survey_responses",
    pairs=(
        ColumnPair("question_id", "question_id", "gqid"),
        ColumnPair("survey_id", "survey_id", "gsid"),
        ColumnPair("category", "category", "cid", sa.String()),
    ),
    fixed=(("id", sa.Integer()), ("result", JSONArray), ("total_score", sa.Float())) + _TIMESTAMPS,
)

ORGANIZATIONAL_RESULTS = TableSpec(
    name="organizational_survey_results",
    pairs=(
        ColumnPair("user_id", "user_id", "uid"),
        ColumnPair("survey_id", "survey_id", "osid"),
    ),
    fixed=(("id", sa.Integer()), ("response", JSONArray), ("response_rate", sa.Float())) + _TIMESTAMPS,
)

ORGANIZATIONAL_FREE_TEXT = TableSpec(
    name="organizational_survey_free_text_responses",
    pairs=(
        ColumnPair("user_id", "user_id", "uid"),
        ColumnPair("survey_id", "survey_id", "osid"),
        ColumnPair("question_id", "question_id", "qid"),
    ),
    fixed=(("id", sa.Integer()), ("answer_text", sa.Text())) + _TIMESTAMPS,
)

GROWTH_FREE_TEXT = TableSpec(
    name="growth_survey_free_text_responses",
    pairs=(
        ColumnPair("user_id", "user_id", "uid"),
        ColumnPair("survey_id", "survey_id", "gsid"),
        ColumnPair("question_id", "question_id", "gqid"),
    ),
    fixed=(("id", sa.Integer()), ("answer_text", sa.Text())) + _TIMESTAMPS,
)


class SchemaResolver:
    """Resolve logical response-table fields to physical column names.

    Table shape is fixed after deploy, so resolutions are cached per
    (database URL, table) for the lifetime of the resolver and never invalidated.
    """

    def __init__(self, cache_enabled: bool = True):
        self.cache_enabled = cache_enabled
        self._cache: dict[tuple[str, str], ResolvedTable] = {}

    async def resolve(self, db: AsyncSession, spec: TableSpec) -> ResolvedTable:
        """Return the resolved table for ``spec``.

        Raises:
            SchemaError: If the table is missing or a field has neither name
        """
        cache_key = (str(db.get_bind().url), spec.name)
        if self.cache_enabled and cache_key in self._cache:
            return self._cache[cache_key]

        present = await self._fetch_column_names(db, spec.name)
        resolved = ResolvedTable(spec, self.choose_columns(spec, present))

        if resolved.uses_legacy_names:
            logger.info(f"Table {spec.name} uses legacy column names: {resolved.physical}")

        if self.cache_enabled:
            self._cache[cache_key] = resolved
        return resolved

    @staticmethod
    def choose_columns(spec: TableSpec, present: set[str]) -> dict[str, str]:
        """Pick a physical name per logical field, preferring the shortened name."""
        chosen: dict[str, str] = {}
        for pair in spec.pairs:
            if pair.current in present:
                chosen[pair.logical] = pair.current
            elif pair.legacy in present:
                chosen[pair.logical] = pair.legacy
            else:
                logger.error(
                    f"Schema mismatch on {spec.name}: neither {pair.current!r} nor {pair.legacy!r} "
                    f"found (columns present: {sorted(present)})"
                )
                raise SchemaError(spec.name, f"no column for field {pair.logical!r}")

        missing_fixed = [name for name, _ in spec.fixed if name not in present]
        if missing_fixed:
            logger.error(f"Schema mismatch on {spec.name}: missing columns {missing_fixed}")
            raise SchemaError(spec.name, f"missing columns {missing_fixed}")

        return chosen

    async def _fetch_column_names(self, db: AsyncSession, table_name: str) -> set[str]:
        def _inspect_columns(sync_session) -> set[str]:
            inspector = inspect(sync_session.connection())
            return {column["name"] for column in inspector.get_columns(table_name)}

        try:
            columns = await db.run_sync(_inspect_columns)
        except NoSuchTableError as e:
            logger.error(f"Schema mismatch: table {table_name} does not exist")
            raise SchemaError(table_name, "table does not exist") from e

        if not columns:
            logger.error(f"Schema mismatch: table {table_name} has no columns or does not exist")
            raise SchemaError(table_name, "table does not exist")
        return columns
