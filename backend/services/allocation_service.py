"""
allocation_service.py — Budget allocation maths
Derives allocation totals and overage for a budget's category line items,
offers the two one-shot rebalancing actions (spread the remainder evenly,
scale down to the total) and maps percentage templates onto an amount.

Everything here is pure: inputs are never mutated and nothing raises.
Invalid states show up as a negative ``remaining``.
"""

from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal("0.01")
UNIT = Decimal("1")
ZERO = Decimal("0")


@dataclass
class CategoryDraft:
    """One editable line item of a budget form."""
    name: str = ""
    description: str | None = ""
    allocated_amount: Decimal | None = ZERO
    id: int | None = None


@dataclass
class TemplateWeight:
    name: str
    percent: Decimal
    description: str = ""


@dataclass
class BudgetTemplate:
    id: str
    name: str
    description: str = ""
    weights: list[TemplateWeight] = field(default_factory=list)


def to_decimal(value) -> Decimal:
    """Coerce form input to Decimal; None, blanks and garbage become 0."""
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return ZERO
    return result if result.is_finite() else ZERO


def round_cents(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


# ------------------------------------------------------------------
# Summary figures

def total_allocated(categories) -> Decimal:
    total = sum((to_decimal(c.allocated_amount) for c in categories), ZERO)
    return max(total, ZERO)


def remaining(total_amount, allocated) -> Decimal:
    return to_decimal(total_amount) - to_decimal(allocated)


def is_allocation_valid(allocated, total_amount) -> bool:
    return to_decimal(allocated) <= to_decimal(total_amount)


def submission_blocked(total_amount, allocated) -> bool:
    """The form refuses to submit an over-allocated budget with a real total."""
    return to_decimal(total_amount) > 0 and not is_allocation_valid(allocated, total_amount)


def allocation_percentage(allocated, total) -> int:
    """Share of ``total`` taken by ``allocated`` as a whole-number percent."""
    total = to_decimal(total)
    if total == 0:
        return 0
    pct = to_decimal(allocated) / total * 100
    return int(pct.quantize(UNIT, rounding=ROUND_HALF_UP))


# ------------------------------------------------------------------
# Rebalancing

def distribute_remaining(categories: list[CategoryDraft], left_over) -> list[CategoryDraft]:
    """Add an even share of a positive remainder to every category."""
    left_over = to_decimal(left_over)
    if left_over <= 0 or not categories:
        return list(categories)

    share = round_cents(left_over / len(categories))
    return [
        replace(c, allocated_amount=round_cents(to_decimal(c.allocated_amount) + share))
        for c in categories
    ]


def adjust_to_total(categories: list[CategoryDraft], allocated, total_amount) -> list[CategoryDraft]:
    """
    Scale every allocation by ``total_amount / allocated`` when over-allocated.
    Proportional, rounded per line; the sum may miss the total by a few cents.
    """
    allocated = to_decimal(allocated)
    total_amount = to_decimal(total_amount)
    if total_amount - allocated >= 0 or allocated <= 0:
        return list(categories)

    factor = total_amount / allocated
    return [
        replace(c, allocated_amount=round_cents(to_decimal(c.allocated_amount) * factor))
        for c in categories
    ]


# ------------------------------------------------------------------
# Templates

def _weights(*rows) -> list[TemplateWeight]:
    return [TemplateWeight(name=n, description=d, percent=Decimal(p)) for n, d, p in rows]


DEFAULT_TEMPLATES = [
    BudgetTemplate(
        id="startup-standard",
        name="Startup Standard",
        description="A standard budget template for early-stage startups",
        weights=_weights(
            ("Product Development", "Software/hardware development costs", 40),
            ("Marketing", "Advertising, PR, and customer acquisition", 25),
            ("Operations", "Office, utilities, and daily operations", 15),
            ("Legal & Admin", "Legal fees, registrations, and admin costs", 10),
            ("Contingency", "Emergency funds for unexpected costs", 10),
        ),
    ),
    BudgetTemplate(
        id="tech-innovation",
        name="Tech Innovation",
        description="Budget template focused on R&D and innovation",
        weights=_weights(
            ("Research & Development", "Core R&D activities", 50),
            ("IP Protection", "Patents, trademarks, and IP management", 15),
            ("Market Testing", "Prototype testing and market validation", 20),
            ("Business Development", "Partnership and client acquisition", 10),
            ("Contingency", "Buffer for unexpected research costs", 5),
        ),
    ),
    BudgetTemplate(
        id="hardware-focus",
        name="Hardware Focus",
        description="Budget template for hardware-based startups",
        weights=_weights(
            ("Prototyping", "Building and testing prototypes", 30),
            ("Manufacturing", "Production and assembly costs", 30),
            ("Supply Chain", "Materials and logistics", 20),
            ("Certification", "Industry certifications and testing", 15),
            ("Contingency", "Emergency funds for production delays", 5),
        ),
    ),
]


def get_template(template_id: str) -> BudgetTemplate | None:
    return next((t for t in DEFAULT_TEMPLATES if t.id == template_id), None)


def categories_from_template(weights: list[TemplateWeight], total_amount) -> list[CategoryDraft]:
    """Pre-populate line items: each gets round(percent / 100 * total) whole units."""
    total_amount = to_decimal(total_amount)
    return [
        CategoryDraft(
            name=w.name,
            description=w.description,
            allocated_amount=(to_decimal(w.percent) / 100 * total_amount).quantize(UNIT, rounding=ROUND_HALF_UP),
        )
        for w in weights
    ]


def template_from_budget(title: str, total_amount, categories) -> BudgetTemplate:
    """Turn an existing budget into a reusable percentage template."""
    slug = "-".join(title.lower().split()) or "budget"
    return BudgetTemplate(
        id=f"custom-{slug}",
        name=f"{title} Template",
        description=f"Template created from {title}",
        weights=[
            TemplateWeight(
                name=c.name,
                description=c.description or "",
                percent=Decimal(allocation_percentage(c.allocated_amount, total_amount)),
            )
            for c in categories
        ],
    )


def validate_template(template: BudgetTemplate) -> list[str]:
    problems = []
    if not template.name.strip():
        problems.append("Template name is required")
    if not template.weights:
        problems.append("At least one category is required")
    return problems
