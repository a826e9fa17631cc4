"""
Storage operations used by the importers and the layer query service.

Upserts go through the dialect's INSERT ... ON CONFLICT so create-or-update is
atomic per unique key. PostgreSQL is the production backend; SQLite is
supported for tests and local tooling.
"""

import uuid
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import and_, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from lore_pipeline.database import (
    HistoricalArea,
    HistoricalAreaGeometry,
    Lod,
    NaturalFeature,
    NaturalFeatureType,
    NaturalGeometry,
    Polity,
)
from lore_pipeline.exceptions import LoreError
from lore_pipeline.normalizers.polity import PolityFields, merge_polity_fields

# Rows fetched per round trip when streaming layer queries
STREAM_CHUNK_SIZE = 1000

_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def dialect_insert(session: Session, model):
    """INSERT construct with ON CONFLICT support for the session's backend."""
    dialect = session.get_bind().dialect.name
    try:
        return _DIALECT_INSERTS[dialect](model)
    except KeyError:
        raise LoreError(f"Upserts are not supported on the {dialect} backend") from None


def _stream(session: Session, stmt) -> Iterator:
    """Yield rows in chunks; the cursor is closed even if the consumer stops early."""
    result = session.execute(stmt, execution_options={"yield_per": STREAM_CHUNK_SIZE})
    try:
        yield from result
    finally:
        result.close()


# =============================================================================
# Historical Boundaries
# =============================================================================

def upsert_polity(session: Session, canonical_key: str, incoming: PolityFields) -> uuid.UUID:
    """
    Create-or-merge a polity by canonical key.

    The row is created with ON CONFLICT DO NOTHING, then locked and merged
    with merge_polity_fields, so concurrent imports of the same key end up on
    one row and never regress its stored fields.

    Returns:
        The polity id
    """
    stmt = dialect_insert(session, Polity).values(
        id=uuid.uuid4(),
        canonical_key=canonical_key,
        display_name=incoming.display_name,
        color_hex=incoming.color_hex,
        valid_from_year=incoming.valid_from_year,
        valid_to_year=incoming.valid_to_year,
    ).on_conflict_do_nothing(index_elements=["canonical_key"])
    session.execute(stmt)

    polity = session.scalars(
        select(Polity).where(Polity.canonical_key == canonical_key).with_for_update()
    ).one()

    current = PolityFields(
        display_name=polity.display_name,
        color_hex=polity.color_hex,
        valid_from_year=polity.valid_from_year,
        valid_to_year=polity.valid_to_year,
    )
    merged = merge_polity_fields(current, incoming)
    if merged != current:
        polity.display_name = merged.display_name
        polity.color_hex = merged.color_hex
        polity.valid_from_year = merged.valid_from_year
        polity.valid_to_year = merged.valid_to_year
        session.flush()

    return polity.id


def upsert_area(
    session: Session,
    year: int,
    source_key: str,
    name: str,
    canonical_name: str,
    border_precision: Optional[int],
    props: Optional[dict],
    polity_id: uuid.UUID,
) -> uuid.UUID:
    """Insert an area or refresh the one already imported for (year, source_key)."""
    stmt = dialect_insert(session, HistoricalArea).values(
        id=uuid.uuid4(),
        year=year,
        source_key=source_key,
        name=name,
        canonical_name=canonical_name,
        border_precision=border_precision,
        props=props,
        polity_id=polity_id,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["year", "source_key"],
        set_={
            "name": stmt.excluded.name,
            "canonical_name": stmt.excluded.canonical_name,
            "border_precision": stmt.excluded.border_precision,
            "props": stmt.excluded.props,
            "polity_id": stmt.excluded.polity_id,
        },
    ).returning(HistoricalArea.id)
    return session.execute(stmt).scalar_one()


def upsert_area_geometry(session: Session, area_id: uuid.UUID, lod: Lod, geojson: dict, source: str) -> None:
    """One geometry per (area, lod); re-import overwrites payload and source label."""
    stmt = dialect_insert(session, HistoricalAreaGeometry).values(
        id=uuid.uuid4(),
        area_id=area_id,
        lod=lod,
        geojson=geojson,
        source=source,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["area_id", "lod"],
        set_={"geojson": stmt.excluded.geojson, "source": stmt.excluded.source},
    )
    session.execute(stmt)


def select_history_rows(session: Session, year: int, lod: Lod, limit: Optional[int] = None) -> Iterator:
    """
    Areas of one year joined to their geometry at lod and to their polity.

    Rows are streamed in source order; areas without a geometry at this LOD
    are left out.
    """
    stmt = (
        select(
            HistoricalArea.id,
            HistoricalArea.name,
            HistoricalArea.canonical_name,
            HistoricalArea.border_precision,
            HistoricalArea.polity_id,
            Polity.canonical_key.label("polity_key"),
            Polity.display_name.label("polity_name"),
            Polity.color_hex.label("polity_color"),
            HistoricalAreaGeometry.geojson,
        )
        .join(
            HistoricalAreaGeometry,
            and_(HistoricalAreaGeometry.area_id == HistoricalArea.id, HistoricalAreaGeometry.lod == lod),
        )
        .outerjoin(Polity, Polity.id == HistoricalArea.polity_id)
        .where(HistoricalArea.year == year)
        .order_by(HistoricalArea.source_key)
    )
    if limit is not None:
        stmt = stmt.limit(limit)

    yield from _stream(session, stmt)


def select_history_years(session: Session) -> list[tuple[int, int]]:
    """(year, area count) for every imported year, ascending."""
    stmt = (
        select(HistoricalArea.year, func.count(HistoricalArea.id))
        .group_by(HistoricalArea.year)
        .order_by(HistoricalArea.year)
    )
    return [(year, count) for year, count in session.execute(stmt)]


# =============================================================================
# Natural Features
# =============================================================================

@dataclass
class NaturalUpsert:
    """Outcome of a natural feature upsert."""
    feature_id: uuid.UUID
    created: bool


def upsert_natural_feature(
    session: Session,
    slug: str,
    feature_type: NaturalFeatureType,
    name: Optional[str],
    props: Optional[dict],
) -> NaturalUpsert:
    """
    Create a feature by slug, or refresh its name and props.

    created_at is only written on insert while updated_at is written every
    time, so equal timestamps mean the row was just created.
    """
    now = datetime.now(timezone.utc)
    stmt = dialect_insert(session, NaturalFeature).values(
        id=uuid.uuid4(),
        type=feature_type,
        name=name,
        slug=slug,
        props=props,
        created_at=now,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["slug"],
        set_={
            "name": stmt.excluded.name,
            "props": stmt.excluded.props,
            "updated_at": stmt.excluded.updated_at,
        },
    ).returning(NaturalFeature.id, NaturalFeature.created_at, NaturalFeature.updated_at)

    row = session.execute(stmt).one()
    return NaturalUpsert(feature_id=row.id, created=row.created_at == row.updated_at)


def upsert_natural_geometry(session: Session, feature_id: uuid.UUID, lod: Lod, geojson: dict, source: str) -> None:
    """One geometry per (feature, lod); re-import overwrites payload and source label."""
    stmt = dialect_insert(session, NaturalGeometry).values(
        id=uuid.uuid4(),
        feature_id=feature_id,
        lod=lod,
        geojson=geojson,
        source=source,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["feature_id", "lod"],
        set_={"geojson": stmt.excluded.geojson, "source": stmt.excluded.source},
    )
    session.execute(stmt)


def select_natural_rows(
    session: Session,
    feature_type: NaturalFeatureType,
    lod: Lod,
    limit: Optional[int] = None,
) -> Iterator:
    """Features of one type joined to their geometry at lod, streamed by slug."""
    stmt = (
        select(
            NaturalFeature.id,
            NaturalFeature.name,
            NaturalFeature.type,
            NaturalFeature.props,
            NaturalGeometry.geojson,
        )
        .join(NaturalGeometry, NaturalGeometry.feature_id == NaturalFeature.id)
        .where(NaturalFeature.type == feature_type, NaturalGeometry.lod == lod)
        .order_by(NaturalFeature.slug)
    )
    if limit is not None:
        stmt = stmt.limit(limit)

    yield from _stream(session, stmt)


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def search_natural_features(session: Session, term: str, limit: int) -> list:
    """Case-insensitive substring search over feature names."""
    stmt = (
        select(NaturalFeature.id, NaturalFeature.name, NaturalFeature.type)
        .where(NaturalFeature.name.ilike(f"%{_escape_like(term)}%", escape="\\"))
        .order_by(NaturalFeature.name)
        .limit(limit)
    )
    return list(session.execute(stmt))


def count_rows(session: Session) -> dict[str, int]:
    """Row counts per table, for status reporting."""
    models = {
        "polities": Polity,
        "historical_areas": HistoricalArea,
        "historical_area_geometries": HistoricalAreaGeometry,
        "natural_features": NaturalFeature,
        "natural_geometries": NaturalGeometry,
    }
    return {
        label: session.scalar(select(func.count()).select_from(model))
        for label, model in models.items()
    }
