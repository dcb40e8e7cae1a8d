"""Persistence layer for saved payoff scenarios.

The web app keeps the scenarios a visitor adds to the comparison table in a
database instead of browser cookies. It defaults to SQLite for local
development, but accepts any SQLAlchemy-compatible URL (e.g.
PostgreSQL/MySQL) for shared deployments.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import Column, DateTime, Integer, String, Text, create_engine, select
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PayoffScenarioModel(Base):
    __tablename__ = "payoff_scenarios"

    id = Column(String(64), primary_key=True)
    user_token = Column(String(64), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    # Insertion order; timestamps can tie within one clock tick
    seq = Column(Integer, nullable=False, default=0)
    simulation_json = Column(Text, nullable=False)
    schedule_json = Column(Text, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)


class ComparisonStore:
    """Database-backed scenario store, scoped per anonymous user token."""

    def __init__(self, url: str, *, max_per_user: int = 10) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)
        self._max_per_user = max_per_user

    def list_scenarios(self, user_token: Optional[str]) -> List[Dict[str, Any]]:
        if not user_token:
            return []
        with self._session_factory() as session:
            rows: Iterable[PayoffScenarioModel] = session.execute(
                select(PayoffScenarioModel)
                .where(PayoffScenarioModel.user_token == user_token)
                .order_by(PayoffScenarioModel.seq.asc())
            ).scalars()
            return [self._to_dict(row) for row in rows]

    def add_scenario(
        self, user_token: Optional[str], scenario_id: str, name: str, simulation: dict, schedule: list
    ) -> None:
        if not user_token:
            return
        with self._session_factory() as session:
            last = session.execute(
                select(PayoffScenarioModel.seq)
                .where(PayoffScenarioModel.user_token == user_token)
                .order_by(PayoffScenarioModel.seq.desc())
                .limit(1)
            ).scalar()
            session.add(
                PayoffScenarioModel(
                    id=scenario_id,
                    user_token=user_token,
                    name=name,
                    seq=(last or 0) + 1,
                    simulation_json=json.dumps(simulation),
                    schedule_json=json.dumps(schedule),
                )
            )
            session.commit()
        self._trim_user(user_token)

    def remove_scenario(self, user_token: Optional[str], scenario_id: Optional[str]) -> None:
        if not user_token or not scenario_id:
            return
        with self._session_factory() as session:
            row = session.get(PayoffScenarioModel, scenario_id)
            if row and row.user_token == user_token:
                session.delete(row)
                session.commit()

    def clear_scenarios(self, user_token: Optional[str]) -> None:
        if not user_token:
            return
        with self._session_factory() as session:
            session.execute(
                PayoffScenarioModel.__table__.delete().where(PayoffScenarioModel.user_token == user_token)
            )
            session.commit()

    def _trim_user(self, user_token: str) -> None:
        if not self._max_per_user or self._max_per_user < 0:
            return
        with self._session_factory() as session:
            rows = session.execute(
                select(PayoffScenarioModel)
                .where(PayoffScenarioModel.user_token == user_token)
                .order_by(PayoffScenarioModel.seq.desc())
            ).scalars().all()
            if len(rows) <= self._max_per_user:
                return
            for row in rows[self._max_per_user :]:
                session.delete(row)
            session.commit()

    @staticmethod
    def _to_dict(row: PayoffScenarioModel) -> Dict[str, Any]:
        return {
            "id": row.id,
            "name": row.name,
            "simulation": json.loads(row.simulation_json),
            "schedule": json.loads(row.schedule_json),
            "created_at": row.created_at.isoformat(),
        }


def create_store_from_env(url: Optional[str], max_per_user: Optional[str] = None) -> ComparisonStore:
    return ComparisonStore(
        url or "sqlite:///comparison_data.sqlite3",
        max_per_user=int(max_per_user) if max_per_user else 10,
    )
