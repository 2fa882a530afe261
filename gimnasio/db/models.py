"""
Modelos SQLAlchemy.

Las listas de referencias cliente<->plan se guardan desnormalizadas en
ambos lados (JSON, JSONB en PostgreSQL) y las mantiene el AssociationManager.
"""

from datetime import datetime
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from gimnasio.db.database import Base

JSONList = JSON().with_variant(JSONB(), "postgresql")


def new_id() -> str:
    return str(uuid4())


# ============================================================
# CLIENTS
# ============================================================


class ClientModel(Base):
    """Cliente."""

    __tablename__ = "clients"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    phone: Mapped[str | None] = mapped_column(String(30))
    active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Referencias desnormalizadas a planes
    plan_ids: Mapped[list[str]] = mapped_column(JSONList, default=list)

    registered_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, onupdate=datetime.now
    )


# ============================================================
# PLANS
# ============================================================


class PlanModel(Base):
    """Plan de entrenamiento."""

    __tablename__ = "plans"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    duration_weeks: Mapped[int | None] = mapped_column(Integer)
    goals: Mapped[str | None] = mapped_column(Text)
    level: Mapped[str] = mapped_column(String(20), default="principiante")
    status: Mapped[str] = mapped_column(String(20), default="active")

    # Referencias desnormalizadas a clientes
    client_ids: Mapped[list[str]] = mapped_column(JSONList, default=list)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, onupdate=datetime.now
    )


# ============================================================
# CONTRACTS
# ============================================================


class ContractModel(Base):
    """Contrato cliente-plan."""

    __tablename__ = "contracts"
    __table_args__ = (
        # Como máximo un contrato vigente por par (cliente, plan)
        Index(
            "uq_contracts_vigente_pair",
            "client_id",
            "plan_id",
            unique=True,
            postgresql_where=text("status = 'vigente'"),
            sqlite_where=text("status = 'vigente'"),
        ),
        Index("ix_contracts_client_plan", "client_id", "plan_id"),
        Index("ix_contracts_status_end_date", "status", "end_date"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    client_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("clients.id"), nullable=False
    )
    plan_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("plans.id"), nullable=False
    )

    conditions: Mapped[str] = mapped_column(Text, default="")
    duration_months: Mapped[int | None] = mapped_column(Integer)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    start_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    status: Mapped[str] = mapped_column(String(20), default="vigente", nullable=False)

    previous_contract_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("contracts.id")
    )
    cancellation_reason: Mapped[str | None] = mapped_column(Text)
    renewed_at: Mapped[datetime | None] = mapped_column(DateTime)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, onupdate=datetime.now
    )


# ============================================================
# FINANCE
# ============================================================


class FinancialMovementModel(Base):
    """Movimiento financiero (ingreso/egreso)."""

    __tablename__ = "financial_movements"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    client_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("clients.id", ondelete="SET NULL"), index=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)


# ============================================================
# TRACKING
# ============================================================


class TrackingRecordModel(Base):
    """Seguimiento de progreso."""

    __tablename__ = "tracking_records"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    client_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("clients.id"), nullable=False, index=True
    )
    contract_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("contracts.id", ondelete="SET NULL"), index=True
    )
    date: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    weight: Mapped[float | None] = mapped_column(Float)
    body_fat: Mapped[float | None] = mapped_column(Float)
    measurements: Mapped[dict | None] = mapped_column(JSON().with_variant(JSONB(), "postgresql"))
    comments: Mapped[str] = mapped_column(Text, default="")

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
