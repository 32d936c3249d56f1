"""Persistence layer for saved calculator scenarios.

Visitors of the public calculator can keep a handful of calculations side by
side. Scenarios are stored per anonymous user token in an SQLAlchemy database
instead of browser cookies. SQLite is the default for local development; any
SQLAlchemy-compatible URL (PostgreSQL, MySQL) works for shared deployments.

Only the loan terms are stored. Summaries are recomputed when scenarios are
listed, so a saved row stays small whatever the term.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import Column, Date, DateTime, Integer, String, create_engine, delete, select
from sqlalchemy.orm import declarative_base, sessionmaker

from repayment_calc.data_models import LoanTerms
from repayment_calc.engine import preview_loan
from repayment_calc.formatter import summary_to_dict
from repayment_calc.logging_config import logger

Base = declarative_base()

DEFAULT_DATABASE_URL = "sqlite:///scenario_data.sqlite3"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SavedScenarioModel(Base):
    __tablename__ = "saved_scenarios"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_token = Column(String(64), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    # Decimal values kept as their exact string form
    principal = Column(String(64), nullable=False)
    annual_rate_percent = Column(String(64), nullable=False)
    term_months = Column(Integer, nullable=False)
    interest_method = Column(String(32), nullable=False)
    start_date = Column(Date, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)


class ScenarioStore:
    """Database-backed store of saved loan terms, capped per user."""

    def __init__(self, url: str, *, max_per_user: int = 10) -> None:
        self._engine = create_engine(url)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False)
        self._max_per_user = max_per_user

    def list_scenarios(self, user_token: Optional[str]) -> List[Dict[str, Any]]:
        """Return the user's scenarios, oldest first, with freshly computed summaries."""
        if not user_token:
            return []
        with self._session_factory() as session:
            rows = session.execute(
                select(SavedScenarioModel)
                .where(SavedScenarioModel.user_token == user_token)
                .order_by(SavedScenarioModel.id.asc())
            ).scalars().all()
        scenarios = []
        for row in rows:
            scenario = self._to_dict(row)
            if scenario is not None:
                scenarios.append(scenario)
        return scenarios

    def add_scenario(self, user_token: Optional[str], name: str, terms: LoanTerms) -> Optional[int]:
        """Save ``terms`` under ``name`` and return the new scenario id."""
        if not user_token:
            return None
        row = SavedScenarioModel(
            user_token=user_token,
            name=name,
            principal=str(terms.principal),
            annual_rate_percent=str(terms.annual_rate_percent),
            term_months=terms.term_months,
            interest_method=terms.interest_method,
            start_date=terms.start_date,
        )
        with self._session_factory() as session:
            session.add(row)
            session.commit()
            scenario_id = row.id
        logger.debug("saved scenario %s for user %s", scenario_id, user_token)
        self._trim_user(user_token)
        return scenario_id

    def remove_scenario(self, user_token: Optional[str], scenario_id: Any) -> None:
        if not user_token or scenario_id is None:
            return
        try:
            key = int(scenario_id)
        except (TypeError, ValueError):
            return
        with self._session_factory() as session:
            row = session.get(SavedScenarioModel, key)
            if row and row.user_token == user_token:
                session.delete(row)
                session.commit()

    def clear_scenarios(self, user_token: Optional[str]) -> None:
        if not user_token:
            return
        with self._session_factory() as session:
            session.execute(delete(SavedScenarioModel).where(SavedScenarioModel.user_token == user_token))
            session.commit()

    def _trim_user(self, user_token: str) -> None:
        if not self._max_per_user or self._max_per_user < 0:
            return
        with self._session_factory() as session:
            stale = session.execute(
                select(SavedScenarioModel.id)
                .where(SavedScenarioModel.user_token == user_token)
                .order_by(SavedScenarioModel.id.desc())
                .offset(self._max_per_user)
            ).scalars().all()
            if not stale:
                return
            session.execute(delete(SavedScenarioModel).where(SavedScenarioModel.id.in_(stale)))
            session.commit()

    def dispose(self) -> None:
        self._engine.dispose()

    @staticmethod
    def _to_dict(row: SavedScenarioModel) -> Optional[Dict[str, Any]]:
        calculation = preview_loan(
            Decimal(row.principal),
            Decimal(row.annual_rate_percent),
            row.term_months,
            row.interest_method,
            row.start_date,
        )
        if calculation is None:
            logger.warning("skipping saved scenario %s with unusable terms", row.id)
            return None
        return {
            "id": row.id,
            "name": row.name,
            "summary": summary_to_dict(calculation),
            "created_at": row.created_at.isoformat(),
        }


def create_store(url: Optional[str], max_per_user: int = 10) -> ScenarioStore:
    return ScenarioStore(url or DEFAULT_DATABASE_URL, max_per_user=max_per_user)
