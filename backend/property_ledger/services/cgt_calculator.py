"""
Australian Capital Gains Tax Calculator (residential investment property)

Cost base:
- Purchase price
- Plus acquisition costs recorded as transactions: stamp duty, conveyancing,
  buyer's agent fees, initial repairs

Capital gain on sale:
- Selling costs (agent commission, legal fees, marketing, other) are added to
  the cost base
- Gain = sale price - (cost base + selling costs)
- 50% CGT discount when held for at least 12 months (365 days) before
  settlement. The discount applies to gains only: a capital loss is
  reported in full even when the holding period qualifies.

Recording a sale is terminal: the property becomes ``sold`` and drops out of
the active portfolio.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Protocol

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..exceptions import (
    InvalidSaleError,
    PropertyAlreadySoldError,
    PropertyNotFoundError,
    SaleNotFoundError,
)
from ..models import Property, PropertySale, PropertyStatus, Transaction
from .depreciation_formulas import round_money, to_decimal

logger = structlog.get_logger(__name__)

CAPITAL_CATEGORIES = ("stamp_duty", "conveyancing", "buyers_agent_fees", "initial_repairs")
SELLING_COST_CATEGORIES = ("property_agent_fees", "legal_expenses")

CGT_DISCOUNT_RATE = Decimal("0.5")
DISCOUNT_HOLDING_DAYS = 365


class CategorisedAmount(Protocol):
    category: str
    amount: Decimal


@dataclass
class SellingCosts:
    """Costs of selling, added to the cost base."""
    agent_commission: Decimal = Decimal("0")
    legal_fees: Decimal = Decimal("0")
    marketing_costs: Decimal = Decimal("0")
    other_selling_costs: Decimal = Decimal("0")

    @property
    def total(self) -> Decimal:
        return (
            to_decimal(self.agent_commission)
            + to_decimal(self.legal_fees)
            + to_decimal(self.marketing_costs)
            + to_decimal(self.other_selling_costs)
        )


@dataclass
class CGTResult:
    """Capital gain on the disposal of a property."""
    cost_base: Decimal            # Purchase price plus acquisition costs
    selling_costs: Decimal
    effective_cost_base: Decimal  # cost_base + selling_costs
    sale_price: Decimal
    capital_gain: Decimal         # Negative for a capital loss
    discounted_gain: Decimal
    held_over_twelve_months: bool
    days_held: int


@dataclass
class AcquisitionCost:
    category: str
    description: Optional[str]
    amount: Decimal
    date: date


@dataclass
class CostBaseBreakdown:
    property_id: int
    purchase_price: Decimal
    purchase_date: date
    acquisition_costs: list[AcquisitionCost] = field(default_factory=list)
    total_acquisition_costs: Decimal = Decimal("0")
    total_cost_base: Decimal = Decimal("0")


@dataclass
class PropertyCGTSummary:
    property: Property
    cost_base: Decimal
    sale: Optional[PropertySale] = None


@dataclass
class CGTSummary:
    properties: list[PropertyCGTSummary]
    active_count: int = 0
    sold_count: int = 0
    total_cost_base: Decimal = Decimal("0")  # Active properties only


def calculate_cost_base(purchase_price: Decimal, transactions: Iterable[CategorisedAmount]) -> Decimal:
    """Purchase price plus the absolute amounts of acquisition-cost transactions."""
    total = to_decimal(purchase_price)
    for txn in transactions:
        if txn.category in CAPITAL_CATEGORIES:
            total += abs(to_decimal(txn.amount))
    return round_money(total)


def calculate_capital_gain(
    cost_base: Decimal,
    sale_price: Decimal,
    selling_costs: SellingCosts,
    purchase_date: date,
    settlement_date: date
) -> CGTResult:
    """Capital gain and discounted gain for a sale."""
    cost_base = to_decimal(cost_base)
    sale_price = to_decimal(sale_price)
    selling_total = selling_costs.total
    effective_cost_base = cost_base + selling_total

    capital_gain = round_money(sale_price - effective_cost_base)

    days_held = (settlement_date - purchase_date).days
    held_over_twelve_months = days_held >= DISCOUNT_HOLDING_DAYS

    if held_over_twelve_months and capital_gain > 0:
        discounted_gain = round_money(capital_gain * CGT_DISCOUNT_RATE)
    else:
        discounted_gain = capital_gain

    return CGTResult(
        cost_base=round_money(cost_base),
        selling_costs=round_money(selling_total),
        effective_cost_base=round_money(effective_cost_base),
        sale_price=round_money(sale_price),
        capital_gain=capital_gain,
        discounted_gain=discounted_gain,
        held_over_twelve_months=held_over_twelve_months,
        days_held=days_held
    )


class CGTService:
    """Owner-scoped cost base and sale operations."""

    def __init__(self, db: Session, owner_id: str):
        self.db = db
        self.owner_id = owner_id
        self.log = logger.bind(owner_id=owner_id)

    def _get_property(self, property_id: int) -> Property:
        prop = self.db.query(Property).filter(
            Property.id == property_id,
            Property.owner_id == self.owner_id
        ).first()
        if not prop:
            raise PropertyNotFoundError(property_id)
        return prop

    def _capital_transactions(self, property_id: int) -> list[Transaction]:
        return self.db.query(Transaction).filter(
            Transaction.property_id == property_id,
            Transaction.owner_id == self.owner_id,
            Transaction.category.in_(CAPITAL_CATEGORIES)
        ).order_by(Transaction.date).all()

    def get_cost_base(self, property_id: int) -> CostBaseBreakdown:
        """Cost base of a property with its acquisition costs itemised."""
        prop = self._get_property(property_id)
        capital_txns = self._capital_transactions(property_id)

        costs = [
            AcquisitionCost(
                category=t.category,
                description=t.description,
                amount=abs(to_decimal(t.amount)),
                date=t.date
            )
            for t in capital_txns
        ]

        return CostBaseBreakdown(
            property_id=prop.id,
            purchase_price=to_decimal(prop.purchase_price),
            purchase_date=prop.purchase_date,
            acquisition_costs=costs,
            total_acquisition_costs=sum((c.amount for c in costs), Decimal("0")),
            total_cost_base=calculate_cost_base(prop.purchase_price, capital_txns)
        )

    def record_sale(
        self,
        property_id: int,
        sale_price: Decimal,
        settlement_date: date,
        contract_date: Optional[date] = None,
        selling_costs: Optional[SellingCosts] = None
    ) -> tuple[PropertySale, CGTResult]:
        """
        Record the sale of a property and archive it.

        Rejected before any write when the property is already sold or the
        settlement date is not after the purchase date.
        """
        selling_costs = selling_costs or SellingCosts()
        prop = self._get_property(property_id)

        if prop.status == PropertyStatus.SOLD:
            raise PropertyAlreadySoldError(property_id)
        if settlement_date <= prop.purchase_date:
            raise InvalidSaleError("Settlement date must be after purchase date")
        if to_decimal(sale_price) < 0 or selling_costs.total < 0:
            raise InvalidSaleError("Sale price and selling costs cannot be negative")

        cost_base = calculate_cost_base(prop.purchase_price, self._capital_transactions(property_id))
        result = calculate_capital_gain(
            cost_base=cost_base,
            sale_price=sale_price,
            selling_costs=selling_costs,
            purchase_date=prop.purchase_date,
            settlement_date=settlement_date
        )

        sale = PropertySale(
            property_id=property_id,
            owner_id=self.owner_id,
            sale_price=result.sale_price,
            settlement_date=settlement_date,
            contract_date=contract_date,
            agent_commission=round_money(to_decimal(selling_costs.agent_commission)),
            legal_fees=round_money(to_decimal(selling_costs.legal_fees)),
            marketing_costs=round_money(to_decimal(selling_costs.marketing_costs)),
            other_selling_costs=round_money(to_decimal(selling_costs.other_selling_costs)),
            cost_base=result.cost_base,
            capital_gain=result.capital_gain,
            discounted_gain=result.discounted_gain,
            held_over_twelve_months=result.held_over_twelve_months
        )
        self.db.add(sale)

        prop.status = PropertyStatus.SOLD
        prop.sold_at = settlement_date

        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self.db.refresh(sale)

        self.log.info(
            "sale_recorded",
            property_id=property_id,
            capital_gain=str(result.capital_gain),
            discounted_gain=str(result.discounted_gain),
            held_over_twelve_months=result.held_over_twelve_months,
        )
        return sale, result

    def get_summary(self, status: str = "all") -> CGTSummary:
        """Cost base and sale figures for every property of the owner."""
        query = self.db.query(Property).filter(Property.owner_id == self.owner_id)
        if status in (PropertyStatus.ACTIVE, PropertyStatus.SOLD):
            query = query.filter(Property.status == PropertyStatus(status))
        properties = query.order_by(Property.id).all()

        capital_txns = self.db.query(Transaction).filter(
            Transaction.owner_id == self.owner_id,
            Transaction.category.in_(CAPITAL_CATEGORIES)
        ).all()

        summaries = []
        for prop in properties:
            property_txns = [t for t in capital_txns if t.property_id == prop.id]
            summaries.append(PropertyCGTSummary(
                property=prop,
                cost_base=calculate_cost_base(prop.purchase_price, property_txns),
                sale=prop.sales[0] if prop.sales else None
            ))

        active = [s for s in summaries if s.property.status == PropertyStatus.ACTIVE]
        return CGTSummary(
            properties=summaries,
            active_count=len(active),
            sold_count=len(summaries) - len(active),
            total_cost_base=sum((s.cost_base for s in active), Decimal("0"))
        )

    def get_sale_details(self, property_id: int) -> PropertySale:
        sale = self.db.query(PropertySale).filter(
            PropertySale.property_id == property_id,
            PropertySale.owner_id == self.owner_id
        ).first()
        if not sale:
            raise SaleNotFoundError(property_id)
        return sale

    def get_selling_costs(self, property_id: int) -> list[Transaction]:
        """Transactions that look like selling costs, newest first (for auto-fill)."""
        self._get_property(property_id)
        return self.db.query(Transaction).filter(
            Transaction.property_id == property_id,
            Transaction.owner_id == self.owner_id,
            Transaction.category.in_(SELLING_COST_CATEGORIES)
        ).order_by(Transaction.date.desc()).all()
