import time
import uuid
from typing import List, Optional
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy import (
    BigInteger,
    Boolean,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)


def _uuid() -> str:
    return str(uuid.uuid4())


def now_ms() -> int:
    return int(time.time() * 1000)


class Base(DeclarativeBase):
    pass


class Website(Base):
    __tablename__ = "websites"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(Text)
    format_pattern: Mapped[str] = mapped_column(Text)

    sub_ids: Mapped[List["SubId"]] = relationship(
        back_populates="website", cascade="all, delete-orphan", passive_deletes=True
    )


class SubId(Base):
    __tablename__ = "sub_ids"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    website_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("websites.id", ondelete="CASCADE"), index=True
    )
    value: Mapped[str] = mapped_column(Text, index=True)
    url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    clickup_task_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    comment_posted: Mapped[bool] = mapped_column(Boolean, default=False)
    timestamp: Mapped[int] = mapped_column(BigInteger, default=now_ms)  # epoch millis
    is_immutable: Mapped[bool] = mapped_column(Boolean, default=False)

    website: Mapped[Website] = relationship(back_populates="sub_ids")


class Geo(Base):
    __tablename__ = "geos"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    code: Mapped[str] = mapped_column(String(32), unique=True)
    name: Mapped[str] = mapped_column(String(128))
    sort_order: Mapped[int] = mapped_column(Integer, default=0)

    rankings: Mapped[List["GeoBrandRanking"]] = relationship(
        back_populates="geo", cascade="all, delete-orphan", passive_deletes=True
    )
    lists: Mapped[List["BrandList"]] = relationship(
        back_populates="geo", cascade="all, delete-orphan", passive_deletes=True
    )


class Brand(Base):
    __tablename__ = "brands"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(256), unique=True)
    default_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(32), default="active")

    rankings: Mapped[List["GeoBrandRanking"]] = relationship(
        back_populates="brand", cascade="all, delete-orphan", passive_deletes=True
    )


class BrandList(Base):
    __tablename__ = "brand_lists"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    geo_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("geos.id", ondelete="CASCADE"), index=True
    )
    name: Mapped[str] = mapped_column(String(128))
    sort_order: Mapped[int] = mapped_column(Integer, default=0)

    geo: Mapped[Geo] = relationship(back_populates="lists")


class GeoBrandRanking(Base):
    __tablename__ = "geo_brand_rankings"
    __table_args__ = (
        UniqueConstraint("geo_id", "brand_id", name="uq_ranking_geo_brand"),
        # NULL positions ("other" brands) never collide
        UniqueConstraint("geo_id", "position", name="uq_ranking_geo_position"),
    )
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    geo_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("geos.id", ondelete="CASCADE"), index=True
    )
    brand_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("brands.id", ondelete="CASCADE"), index=True
    )
    list_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("brand_lists.id", ondelete="SET NULL"), nullable=True
    )
    position: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    affiliate_link: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    timestamp: Mapped[int] = mapped_column(BigInteger, default=now_ms)

    geo: Mapped[Geo] = relationship(back_populates="rankings")
    brand: Mapped[Brand] = relationship(back_populates="rankings")
