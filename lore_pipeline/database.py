"""
Database models for the WorldLore geo layers.

Uses SQLAlchemy 2.0. Geometries are stored as GeoJSON payloads (JSONB on
PostgreSQL, JSON elsewhere), one row per owner and level of detail.
"""

import enum
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    SmallInteger,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    create_engine,
)
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
    relationship,
    sessionmaker,
)
from sqlalchemy.pool import StaticPool
from sqlalchemy.sql import func

from lore_pipeline.config import settings


# =============================================================================
# Database Engine and Session
# =============================================================================

def _engine_options(url: str) -> dict:
    """Connection options per backend."""
    if url.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url.rstrip("/") == "sqlite:":
            # One shared connection, otherwise each session sees an empty database
            options["poolclass"] = StaticPool
        return options

    return {
        "pool_pre_ping": True,
        "pool_size": 10,
        "max_overflow": 20,
        "pool_timeout": 30,
        "pool_recycle": 1800,
        "connect_args": {
            "connect_timeout": 10,
            "options": "-c statement_timeout=60000",
        },
    }


engine = create_engine(
    settings.database.url,
    echo=settings.pipeline.log_level == "DEBUG",
    **_engine_options(settings.database.url),
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Dependency for FastAPI to get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# =============================================================================
# Base Model
# =============================================================================

class Base(DeclarativeBase):
    """Base class for all models."""
    pass


JSONPayload = JSON().with_variant(JSONB(), "postgresql")


class Lod(str, enum.Enum):
    """Geometry level of detail."""
    LOW = "LOW"
    MED = "MED"
    HIGH = "HIGH"


class NaturalFeatureType(str, enum.Enum):
    RIVER = "RIVER"
    MOUNTAIN_RANGE = "MOUNTAIN_RANGE"
    PEAK = "PEAK"


LodType = SQLEnum(Lod, name="geometry_lod")
NaturalFeatureTypeType = SQLEnum(NaturalFeatureType, name="natural_feature_type")


# =============================================================================
# Historical Boundaries
# =============================================================================

class Polity(Base):
    """
    Canonical historical political entity.

    Many areas across many years map onto one polity through its canonical
    key. Rows are merged on import and never deleted.
    """
    __tablename__ = "historical_polities"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    canonical_key: Mapped[str] = mapped_column(String(300), nullable=False, unique=True)
    display_name: Mapped[Optional[str]] = mapped_column(String(300), nullable=True)
    color_hex: Mapped[Optional[str]] = mapped_column(String(7), nullable=True)

    # Source years in which any area mapped to this polity
    valid_from_year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    valid_to_year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    props: Mapped[Optional[dict]] = mapped_column(JSONPayload, nullable=True)

    areas: Mapped[List["HistoricalArea"]] = relationship("HistoricalArea", back_populates="polity")

    def __repr__(self) -> str:
        return f"<Polity {self.canonical_key}>"


class HistoricalArea(Base):
    """
    One polygon observed in one source year.

    source_key identifies the feature inside its year file
    ("<normalized name>#<occurrence>") so re-importing a year updates rows
    instead of duplicating them.
    """
    __tablename__ = "historical_areas"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    year: Mapped[int] = mapped_column(Integer, nullable=False)
    source_key: Mapped[str] = mapped_column(String(400), nullable=False)

    name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    canonical_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    border_precision: Mapped[Optional[int]] = mapped_column(SmallInteger, nullable=True)

    # Source properties, verbatim
    props: Mapped[Optional[dict]] = mapped_column(JSONPayload, nullable=True)

    polity_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("historical_polities.id", ondelete="SET NULL"),
        nullable=True,
    )

    polity: Mapped[Optional["Polity"]] = relationship("Polity", back_populates="areas")
    geometries: Mapped[List["HistoricalAreaGeometry"]] = relationship(
        "HistoricalAreaGeometry", back_populates="area", cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint("year", "source_key", name="uq_historical_area_source"),
        Index("idx_historical_areas_year", "year"),
        Index("idx_historical_areas_polity", "polity_id"),
    )

    def __repr__(self) -> str:
        return f"<HistoricalArea {self.name} ({self.year})>"


class HistoricalAreaGeometry(Base):
    """GeoJSON geometry of an area at one level of detail."""
    __tablename__ = "historical_area_geometries"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    area_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("historical_areas.id", ondelete="CASCADE"),
        nullable=False,
    )
    lod: Mapped[Lod] = mapped_column(LodType, nullable=False)
    geojson: Mapped[dict] = mapped_column(JSONPayload, nullable=False)
    source: Mapped[Optional[str]] = mapped_column(String(300), nullable=True)

    area: Mapped["HistoricalArea"] = relationship("HistoricalArea", back_populates="geometries")

    __table_args__ = (
        UniqueConstraint("area_id", "lod", name="uq_historical_area_geometry_lod"),
    )


# =============================================================================
# Natural Features
# =============================================================================

class NaturalFeature(Base):
    """
    River, mountain range or peak.

    The slug ("<type>:<name>:<lat>_<lng>") collapses LOD variants of the same
    physical feature onto one row.
    """
    __tablename__ = "natural_features"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    type: Mapped[NaturalFeatureType] = mapped_column(NaturalFeatureTypeType, nullable=False)
    name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    slug: Mapped[str] = mapped_column(String(500), nullable=False, unique=True)
    props: Mapped[Optional[dict]] = mapped_column(JSONPayload, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    geometries: Mapped[List["NaturalGeometry"]] = relationship(
        "NaturalGeometry", back_populates="feature", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_natural_features_type", "type"),
        Index("idx_natural_features_name", "name"),
    )

    def __repr__(self) -> str:
        return f"<NaturalFeature {self.slug}>"


class NaturalGeometry(Base):
    """GeoJSON geometry of a natural feature at one level of detail."""
    __tablename__ = "natural_geometries"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    feature_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("natural_features.id", ondelete="CASCADE"),
        nullable=False,
    )
    lod: Mapped[Lod] = mapped_column(LodType, nullable=False)
    geojson: Mapped[dict] = mapped_column(JSONPayload, nullable=False)
    source: Mapped[Optional[str]] = mapped_column(String(300), nullable=True)

    feature: Mapped["NaturalFeature"] = relationship("NaturalFeature", back_populates="geometries")

    __table_args__ = (
        UniqueConstraint("feature_id", "lod", name="uq_natural_geometry_lod"),
        Index("idx_natural_geometries_lod", "lod"),
    )


# =============================================================================
# Helper Functions
# =============================================================================

def create_all_tables():
    """Create all database tables. Safe to re-run."""
    Base.metadata.create_all(bind=engine, checkfirst=True)


def drop_all_tables():
    """Drop all database tables. USE WITH CAUTION!"""
    Base.metadata.drop_all(bind=engine)
