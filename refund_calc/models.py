"""Record types shared by the calculator, the store and the web UI.

Every record converts to and from the camelCase JSON shape used by the
persisted store and the backup file (``to_dict`` / ``from_dict``).
``from_dict`` raises ``KeyError``/``TypeError``/``ValueError`` on malformed
records; callers decide whether that is fatal.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from refund_calc.parsing import DEFAULT_UNIT, parse_weeks


def _num(value: Any) -> float:
    if value is None or value == "":
        return 0.0
    return float(value)


def _opt_num(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


@dataclass(frozen=True)
class CalculationInput:
    amount_paid: float = 0.0
    medication_dispensed: float = 0.0
    medication_unit: str = DEFAULT_UNIT
    weeks_paid: float = 0.0
    weeks_received: float = 0.0
    notes: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "amountPaid": self.amount_paid,
            "medicationDispensed": self.medication_dispensed,
            "medicationUnit": self.medication_unit,
            "weeksPaid": self.weeks_paid,
            "weeksReceived": self.weeks_received,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CalculationInput":
        return cls(
            amount_paid=_num(d.get("amountPaid")),
            medication_dispensed=_num(d.get("medicationDispensed")),
            medication_unit=d.get("medicationUnit") or DEFAULT_UNIT,
            weeks_paid=_num(d.get("weeksPaid")),
            weeks_received=_num(d.get("weeksReceived")),
            notes=d.get("notes") or "",
        )


@dataclass(frozen=True)
class CalculationResult:
    id: str
    input: CalculationInput
    cost_per_week: float
    cost_per_unit: float
    medication_per_week: float
    weekly_cost_per_unit: float
    refund_amount: float
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "input": self.input.to_dict(),
            "costPerWeek": self.cost_per_week,
            "costPerUnit": self.cost_per_unit,
            "medicationPerWeek": self.medication_per_week,
            "weeklyCostPerUnit": self.weekly_cost_per_unit,
            "refundAmount": self.refund_amount,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CalculationResult":
        return cls(
            id=str(d["id"]),
            input=CalculationInput.from_dict(d["input"]),
            cost_per_week=_num(d.get("costPerWeek")),
            cost_per_unit=_num(d.get("costPerUnit")),
            medication_per_week=_num(d.get("medicationPerWeek")),
            weekly_cost_per_unit=_num(d.get("weeklyCostPerUnit")),
            refund_amount=_num(d.get("refundAmount")),
            timestamp=int(d["timestamp"]),
        )


@dataclass(frozen=True)
class HistoryItem:
    id: str
    timestamp: int
    result: CalculationResult

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "timestamp": self.timestamp, "result": self.result.to_dict()}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "HistoryItem":
        return cls(
            id=str(d["id"]),
            timestamp=int(d["timestamp"]),
            result=CalculationResult.from_dict(d["result"]),
        )


@dataclass(frozen=True)
class Template:
    id: str
    name: str
    input: CalculationInput
    created_at: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "input": self.input.to_dict(),
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Template":
        return cls(
            id=str(d["id"]),
            name=str(d["name"]),
            input=CalculationInput.from_dict(d["input"]),
            created_at=int(d["createdAt"]),
        )


@dataclass(frozen=True)
class CostBreakdown:
    """Itemized cost of goods for one catalog entry."""

    per_shipment_cost: float = 0.0
    shipping: float = 0.0
    dispensing: float = 0.0
    total: float = 0.0

    @property
    def cogs_total(self) -> float:
        # the spreadsheet TOTAL wins; fall back to the itemized parts
        if self.total > 0:
            return self.total
        return self.per_shipment_cost + self.shipping + self.dispensing

    def to_dict(self) -> Dict[str, Any]:
        return {
            "perShipmentCost": self.per_shipment_cost,
            "shipping": self.shipping,
            "dispensing": self.dispensing,
            "total": self.total,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CostBreakdown":
        return cls(
            per_shipment_cost=_num(d.get("perShipmentCost")),
            shipping=_num(d.get("shipping")),
            dispensing=_num(d.get("dispensing")),
            total=_num(d.get("total")),
        )


@dataclass(frozen=True)
class Medication:
    id: str
    name: str
    category: Optional[str] = None
    pharmacy: Optional[str] = None
    treatment: Optional[str] = None
    price: Optional[float] = None
    unit: Optional[str] = None
    quantity: Optional[float] = None
    payment_term: Optional[str] = None
    costs: Optional[CostBreakdown] = None

    @property
    def weeks(self) -> float:
        return parse_weeks(self.payment_term)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "pharmacy": self.pharmacy,
            "treatment": self.treatment,
            "price": self.price,
            "unit": self.unit,
            "quantity": self.quantity,
            "paymentTerm": self.payment_term,
        }
        if self.costs is not None:
            d["costs"] = self.costs.to_dict()
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Medication":
        costs = d.get("costs")
        return cls(
            id=str(d["id"]),
            name=str(d["name"]),
            category=d.get("category") or None,
            pharmacy=d.get("pharmacy") or None,
            treatment=d.get("treatment") or None,
            price=_opt_num(d.get("price")),
            unit=d.get("unit") or None,
            quantity=_opt_num(d.get("quantity")),
            payment_term=d.get("paymentTerm") or None,
            costs=CostBreakdown.from_dict(costs) if costs else None,
        )


@dataclass(frozen=True)
class SelectedMedication:
    """A catalog entry added to the current session together with its calculation."""

    medication: Medication
    calculation: CalculationResult

    def to_dict(self) -> Dict[str, Any]:
        return {"medication": self.medication.to_dict(), "calculation": self.calculation.to_dict()}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SelectedMedication":
        return cls(
            medication=Medication.from_dict(d["medication"]),
            calculation=CalculationResult.from_dict(d["calculation"]),
        )


@dataclass(frozen=True)
class Statistics:
    total_refunds: float = 0.0
    average_refund: float = 0.0
    total_calculations: int = 0
    most_used_medication: Optional[str] = None
