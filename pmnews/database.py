"""
Article store (SQLite by default, PostgreSQL via DATABASE_URL).

Tables:
  - news_raw: in-scope articles, one row per URL. Written by the crawl,
    body_text patched by deep scrape, ai_* fields written by the summarizer.
  - news_to_process: out-of-scope references, one row per source URL.

Crawl writes are upserts keyed on URL, so re-running a crawl over the same
window is idempotent and merges instead of duplicating.
"""

import json
import logging
import uuid
from collections import Counter
from contextlib import contextmanager
from datetime import datetime, time, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import (
    create_engine, case, func, or_, Column, String, Text, DateTime,
)
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool

from pmnews.config import get_settings
from pmnews.errors import PersistenceError
from pmnews.shared.helpers import parse_day
from pmnews.schemas import (
    CandidateArticle, ExtractionStatus, NewsRawRecord, NewsToProcessRecord, PendingArticle,
)

logger = logging.getLogger(__name__)

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _to_naive_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Timestamps are stored as naive UTC on every backend."""
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def _as_aware(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt


# ── Models ───────────────────────────────────────────────────────────────────

class NewsRawModel(Base):
    """In-scope article."""
    __tablename__ = "news_raw"

    id = Column(String(36), primary_key=True)
    url = Column(String(2048), nullable=False, unique=True)
    source_name = Column(String(200), nullable=False, index=True)
    published_at = Column(DateTime, index=True)
    headline = Column(String(500), nullable=False)
    body_text = Column(Text)
    extraction_status = Column(String(20), nullable=False, default=ExtractionStatus.PENDING.value, index=True)
    ai_summary = Column(Text)
    ai_keywords = Column(Text)  # JSON array
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow)


class NewsToProcessModel(Base):
    """Out-of-scope reference kept for later review."""
    __tablename__ = "news_to_process"

    id = Column(String(36), primary_key=True)
    source_name = Column(String(200), nullable=False, index=True)
    source_url = Column(String(2048), nullable=False, unique=True)
    published_at = Column(DateTime)
    created_at = Column(DateTime, default=_utcnow)


# ── Database class ───────────────────────────────────────────────────────────

class Database:
    """Database manager — singleton, lazy-initialized."""

    def __init__(self, database_url: Optional[str] = None):
        settings = get_settings()
        url = database_url or settings.database_url

        kwargs: Dict[str, Any] = {"echo": False}
        if url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            if url in ("sqlite://", "sqlite:///:memory:"):
                # One shared connection, otherwise every session sees an empty database
                kwargs["poolclass"] = StaticPool

        self.engine = create_engine(url, **kwargs)
        self.SessionLocal = sessionmaker(bind=self.engine)

    def create_tables(self):
        """Create all tables (safe to call multiple times)."""
        Base.metadata.create_all(self.engine)

    @contextmanager
    def get_session(self) -> Session:
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _insert(self, model):
        """Dialect-specific INSERT supporting ON CONFLICT."""
        if self.engine.dialect.name == "postgresql":
            return postgresql.insert(model)
        if self.engine.dialect.name == "sqlite":
            return sqlite.insert(model)
        raise PersistenceError(f"Upsert not supported for dialect {self.engine.dialect.name}")

    # ── Crawl writes ──────────────────────────────────────────────────

    def upsert_news_raw(self, articles: Sequence[CandidateArticle]) -> int:
        """
        Insert or merge in-scope articles keyed on url.

        On conflict: source_name and headline are replaced, published_at keeps
        the stored value when the new one is null, body_text is replaced only
        by longer text. extraction_status and ai_* are never touched.
        Returns the number of rows written.
        """
        rows = []
        now = _utcnow()
        for a in _unique_by(articles, lambda a: a.url):
            rows.append({
                "id": str(uuid.uuid4()),
                "url": a.url,
                "source_name": a.source_name,
                "published_at": _to_naive_utc(a.published_at),
                "headline": a.headline,
                "body_text": a.body_text,
                "extraction_status": ExtractionStatus.PENDING.value,
                "created_at": now,
                "updated_at": now,
            })
        if not rows:
            return 0

        table = NewsRawModel.__table__
        stmt = self._insert(NewsRawModel).values(rows)
        new = stmt.excluded
        stmt = stmt.on_conflict_do_update(
            index_elements=["url"],
            set_={
                "source_name": new.source_name,
                "headline": new.headline,
                "published_at": func.coalesce(new.published_at, table.c.published_at),
                "body_text": case(
                    (
                        func.length(func.coalesce(new.body_text, ""))
                        > func.length(func.coalesce(table.c.body_text, "")),
                        new.body_text,
                    ),
                    else_=table.c.body_text,
                ),
                "updated_at": new.updated_at,
            },
        )
        try:
            with self.get_session() as session:
                session.execute(stmt)
        except SQLAlchemyError as e:
            raise PersistenceError(f"news_raw upsert failed: {e}") from e
        return len(rows)

    def upsert_news_to_process(self, articles: Sequence[CandidateArticle]) -> int:
        """Insert or merge out-of-scope references keyed on source_url."""
        now = _utcnow()
        rows = [
            {
                "id": str(uuid.uuid4()),
                "source_name": a.source_name,
                "source_url": a.url,
                "published_at": _to_naive_utc(a.published_at),
                "created_at": now,
            }
            for a in _unique_by(articles, lambda a: a.url)
        ]
        if not rows:
            return 0

        table = NewsToProcessModel.__table__
        stmt = self._insert(NewsToProcessModel).values(rows)
        stmt = stmt.on_conflict_do_update(
            index_elements=["source_url"],
            set_={
                "source_name": stmt.excluded.source_name,
                "published_at": func.coalesce(stmt.excluded.published_at, table.c.published_at),
            },
        )
        try:
            with self.get_session() as session:
                session.execute(stmt)
        except SQLAlchemyError as e:
            raise PersistenceError(f"news_to_process upsert failed: {e}") from e
        return len(rows)

    # ── Deep scrape ───────────────────────────────────────────────────

    def get_articles_by_ids(self, article_ids: Iterable[str]) -> Dict[str, str]:
        """Map of id → url for the ids that exist in news_raw."""
        ids = list(article_ids)
        if not ids:
            return {}
        with self.get_session() as session:
            rows = session.query(NewsRawModel.id, NewsRawModel.url).filter(NewsRawModel.id.in_(ids)).all()
            return {r.id: r.url for r in rows}

    def update_body_text(self, article_id: str, body_text: str) -> Optional[str]:
        """
        Replace body_text of one article unless the stored text is longer.

        Returns the body that is stored after the call, or None when the
        article does not exist.
        """
        try:
            with self.get_session() as session:
                row = session.query(NewsRawModel).filter_by(id=article_id).first()
                if row is None:
                    return None
                if len(row.body_text or "") <= len(body_text or ""):
                    row.body_text = body_text
                    row.updated_at = _utcnow()
                else:
                    logger.debug(f"Keeping longer stored body for {article_id}")
                return row.body_text
        except SQLAlchemyError as e:
            raise PersistenceError(f"body_text update failed for {article_id}: {e}") from e

    # ── Summaries ─────────────────────────────────────────────────────

    def get_pending_articles(
        self,
        article_ids: Optional[Sequence[str]] = None,
        batch_size: int = 5,
    ) -> List[PendingArticle]:
        """Articles to summarize: the given ids (any status), or up to batch_size oldest Pending ones."""
        with self.get_session() as session:
            q = session.query(NewsRawModel)
            if article_ids:
                q = q.filter(NewsRawModel.id.in_(list(article_ids)))
            else:
                q = q.filter(NewsRawModel.extraction_status == ExtractionStatus.PENDING.value)
                q = q.order_by(NewsRawModel.created_at.asc()).limit(batch_size)
            rows = q.all()
            return [PendingArticle(id=r.id, headline=r.headline, body_text=r.body_text) for r in rows]

    def save_summary(self, article_id: str, summary: str, keywords: Optional[List[str]]) -> bool:
        """Store summarizer output and mark the article Extracted."""
        try:
            with self.get_session() as session:
                row = session.query(NewsRawModel).filter_by(id=article_id).first()
                if row is None:
                    return False
                row.ai_summary = summary
                row.ai_keywords = json.dumps(list(keywords or []))
                row.extraction_status = ExtractionStatus.EXTRACTED.value
                row.updated_at = _utcnow()
                return True
        except SQLAlchemyError as e:
            raise PersistenceError(f"summary update failed for {article_id}: {e}") from e

    # ── Read side ─────────────────────────────────────────────────────

    def list_news_raw(
        self,
        sources: Optional[Sequence[str]] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
        start_date=None,
        end_date=None,
        limit: int = 100,
    ) -> List[NewsRawRecord]:
        """Query in-scope articles, newest first (unknown dates last)."""
        with self.get_session() as session:
            q = session.query(NewsRawModel)
            if sources:
                q = q.filter(NewsRawModel.source_name.in_(list(sources)))
            if status:
                q = q.filter(NewsRawModel.extraction_status == status)
            if search:
                pattern = f"%{search}%"
                q = q.filter(or_(NewsRawModel.headline.ilike(pattern), NewsRawModel.body_text.ilike(pattern)))
            if start_date:
                q = q.filter(NewsRawModel.published_at >= _day_start(start_date))
            if end_date:
                q = q.filter(NewsRawModel.published_at <= _day_end(end_date))

            rows = q.order_by(NewsRawModel.published_at.desc().nulls_last()).limit(limit).all()
            return [_raw_record(r) for r in rows]

    def list_news_to_process(
        self,
        sources: Optional[Sequence[str]] = None,
        limit: int = 100,
    ) -> List[NewsToProcessRecord]:
        with self.get_session() as session:
            q = session.query(NewsToProcessModel)
            if sources:
                q = q.filter(NewsToProcessModel.source_name.in_(list(sources)))
            rows = q.order_by(NewsToProcessModel.published_at.desc().nulls_last()).limit(limit).all()
            return [
                NewsToProcessRecord(
                    id=r.id,
                    source_name=r.source_name,
                    source_url=r.source_url,
                    published_at=_as_aware(r.published_at),
                    created_at=_as_aware(r.created_at),
                )
                for r in rows
            ]

    def get_stats(self) -> Dict[str, Any]:
        """Dashboard counters over news_raw."""
        with self.get_session() as session:
            rows = session.query(
                NewsRawModel.source_name, NewsRawModel.extraction_status, NewsRawModel.ai_keywords,
            ).all()

        sources: Counter = Counter()
        keywords: Counter = Counter()
        extracted = 0
        for source_name, status, ai_keywords in rows:
            sources[source_name] += 1
            if status == ExtractionStatus.EXTRACTED.value:
                extracted += 1
            keywords.update(_load_keywords(ai_keywords) or [])

        return {
            "totalArticles": len(rows),
            "extractedArticles": extracted,
            "pendingArticles": len(rows) - extracted,
            "sourceBreakdown": dict(sources),
            "keywordBreakdown": dict(keywords),
        }


# ── Row helpers ──────────────────────────────────────────────────────────────

def _unique_by(items, key) -> list:
    """Collapse repeated keys inside one write batch (first wins)."""
    seen = set()
    unique = []
    for item in items:
        k = key(item)
        if k in seen:
            continue
        seen.add(k)
        unique.append(item)
    return unique


def _load_keywords(raw: Optional[str]) -> Optional[List[str]]:
    if not raw:
        return None
    try:
        value = json.loads(raw)
    except ValueError:
        return None
    return [str(k) for k in value] if isinstance(value, list) else None


def _day_start(value) -> datetime:
    return datetime.combine(parse_day(value), time.min)


def _day_end(value) -> datetime:
    return datetime.combine(parse_day(value), time(23, 59, 59, 999000))


def _raw_record(r: NewsRawModel) -> NewsRawRecord:
    return NewsRawRecord(
        id=r.id,
        url=r.url,
        source_name=r.source_name,
        published_at=_as_aware(r.published_at),
        headline=r.headline,
        body_text=r.body_text,
        extraction_status=r.extraction_status,
        ai_summary=r.ai_summary,
        ai_keywords=_load_keywords(r.ai_keywords),
        created_at=_as_aware(r.created_at),
        updated_at=_as_aware(r.updated_at),
    )


# ── Singleton ────────────────────────────────────────────────────────────────

_db: Optional[Database] = None


def get_database() -> Database:
    """Get or create database instance."""
    global _db
    if _db is None:
        _db = Database()
        _db.create_tables()
    return _db
