"""
Read-side projections for the dashboard.

Every function recomputes from transaction/installment records and an explicit
``today``. No counters are kept between calls, so a fresh read after any
write is always consistent with the stored rows.
"""

from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Tuple

from payables_gateway.domain.models import (
    AgingBucket,
    CashFlowPoint,
    CategoryTotal,
    InstallmentRecord,
    KPISummary,
    StatusBucket,
    TimelinePoint,
    TransactionRecord,
    EFFECTIVE_STATUSES,
    OVERDUE,
    PAID,
    PAYABLE,
    RECEIVABLE,
)
from payables_gateway.domain.money import from_cents, to_cents
from payables_gateway.domain.status import effective_status, transaction_effective_status
from payables_gateway.utils.date_utils import add_months, generate_month_range, month_key, month_start

# (label, upper bound in days overdue, inclusive); None = open ended
AGING_BUCKETS: List[Tuple[str, int | None]] = [
    ("0-30", 30),
    ("31-60", 60),
    ("61-90", 90),
    ("90+", None),
]

OTHER_CATEGORY = "other"

# Keyword fallback for transactions saved without an explicit category
CATEGORY_KEYWORDS: Dict[str, List[str]] = {
    "suppliers": ["supplier", "purchase", "material", "product", "fornecedor", "compra"],
    "payroll": ["salary", "payroll", "employee", "wage", "salário", "folha"],
    "taxes": ["tax", "duty", "imposto", "tributo", "icms"],
    "utilities": ["electricity", "power", "water", "phone", "internet", "energia"],
    "rent": ["rent", "lease", "aluguel"],
    "marketing": ["marketing", "advertising", "publicidade"],
}


def _group_installments(installments: Iterable[InstallmentRecord]) -> Dict:
    grouped = defaultdict(list)
    for installment in installments:
        grouped[installment.transaction_id].append(installment)
    return grouped


def _open_items(
    transactions: List[TransactionRecord],
    installments: List[InstallmentRecord],
) -> List[Tuple[str, date | None, int]]:
    """
    Unpaid (direction, due_date, cents) items.

    Scheduled transactions contribute their unpaid installments; unscheduled
    ones contribute themselves.
    """
    grouped = _group_installments(installments)
    items = []
    for t in transactions:
        children = grouped.get(t.id)
        if children:
            items.extend((t.direction, i.due_date, to_cents(i.value)) for i in children if i.status != PAID)
        elif t.status != PAID:
            items.append((t.direction, t.due_date, to_cents(t.amount)))
    return items


def kpi_summary(
    transactions: List[TransactionRecord],
    installments: List[InstallmentRecord],
    today: date,
) -> KPISummary:
    """Month income/expenses, running balance, open totals and overdue counts"""
    current_month = month_key(today)
    month_income = month_expenses = balance = 0

    for t in transactions:
        cents = to_cents(t.amount)
        in_month = t.created_at is not None and month_key(t.created_at.date()) == current_month
        if t.direction == RECEIVABLE:
            balance += cents
            if in_month:
                month_income += cents
        elif t.direction == PAYABLE:
            balance -= cents
            if in_month:
                month_expenses += cents

    open_totals = {PAYABLE: 0, RECEIVABLE: 0}
    for direction, _, cents in _open_items(transactions, installments):
        open_totals[direction] += cents

    grouped = _group_installments(installments)
    overdue_transactions = sum(
        1 for t in transactions if transaction_effective_status(t, grouped.get(t.id, []), today) == OVERDUE
    )
    overdue_installments = sum(1 for i in installments if effective_status(i.status, i.due_date, today) == OVERDUE)

    return KPISummary(
        month_income=from_cents(month_income),
        month_expenses=from_cents(month_expenses),
        balance=from_cents(balance),
        open_receivable=from_cents(open_totals[RECEIVABLE]),
        open_payable=from_cents(open_totals[PAYABLE]),
        overdue_installments=overdue_installments,
        overdue_transactions=overdue_transactions,
    )


def aging_buckets(
    transactions: List[TransactionRecord],
    installments: List[InstallmentRecord],
    today: date,
) -> List[AgingBucket]:
    """
    Unpaid amounts by days past due.

    Items not yet due fall in the first bucket; items without a due date are
    left out.
    """
    totals = {label: {PAYABLE: 0, RECEIVABLE: 0} for label, _ in AGING_BUCKETS}

    for direction, due_date, cents in _open_items(transactions, installments):
        if due_date is None:
            continue
        days_overdue = (today - due_date).days
        for label, upper in AGING_BUCKETS:
            if upper is None or days_overdue <= upper:
                totals[label][direction] += cents
                break

    return [
        AgingBucket(
            label=label,
            receivable=from_cents(totals[label][RECEIVABLE]),
            payable=from_cents(totals[label][PAYABLE]),
        )
        for label, _ in AGING_BUCKETS
    ]


def installment_status_breakdown(installments: List[InstallmentRecord], today: date) -> List[StatusBucket]:
    counts = {status: 0 for status in EFFECTIVE_STATUSES}
    values = {status: 0 for status in EFFECTIVE_STATUSES}

    for i in installments:
        status = effective_status(i.status, i.due_date, today)
        counts[status] += 1
        values[status] += to_cents(i.value)

    return [StatusBucket(status=s, count=counts[s], value=from_cents(values[s])) for s in EFFECTIVE_STATUSES]


def installment_timeline(installments: List[InstallmentRecord], today: date, months: int = 6) -> List[TimelinePoint]:
    """Effective status counts per due month for the last `months` months, oldest first"""
    if months < 1:
        return []

    start = add_months(today, -(months - 1))
    counts = {month_key(m): {status: 0 for status in EFFECTIVE_STATUSES} for m in generate_month_range(start, today)}

    for i in installments:
        key = month_key(i.due_date)
        if key in counts:
            counts[key][effective_status(i.status, i.due_date, today)] += 1

    return [
        TimelinePoint(month=key, pending=c["pending"], paid=c["paid"], overdue=c["overdue"])
        for key, c in counts.items()
    ]


def categorize(description: str) -> str:
    """Map a free-text description to an expense category by keyword"""
    text = (description or "").lower()
    for category, keywords in CATEGORY_KEYWORDS.items():
        if any(keyword in text for keyword in keywords):
            return category
    return OTHER_CATEGORY


def category_totals(transactions: List[TransactionRecord]) -> List[CategoryTotal]:
    """Payable totals per category, largest first, zero categories omitted"""
    totals: Dict[str, int] = defaultdict(int)
    for t in transactions:
        if t.direction != PAYABLE:
            continue
        totals[t.category or categorize(t.description)] += to_cents(t.amount)

    return [
        CategoryTotal(category=category, amount=from_cents(cents))
        for category, cents in sorted(totals.items(), key=lambda kv: (-kv[1], kv[0]))
        if cents > 0
    ]


def cash_flow(transactions: List[TransactionRecord], start: date, end: date) -> List[CashFlowPoint]:
    """Receivable vs payable by creation month between start and end"""
    months = {month_key(m): {RECEIVABLE: 0, PAYABLE: 0} for m in generate_month_range(month_start(start), end)}

    for t in transactions:
        if t.created_at is None:
            continue
        key = month_key(t.created_at.date())
        if key in months and t.direction in months[key]:
            months[key][t.direction] += to_cents(t.amount)

    return [
        CashFlowPoint(
            month=key,
            receivable=from_cents(m[RECEIVABLE]),
            payable=from_cents(m[PAYABLE]),
            balance=from_cents(m[RECEIVABLE] - m[PAYABLE]),
        )
        for key, m in months.items()
    ]
