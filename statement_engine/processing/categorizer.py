"""
Keyword-based transaction categorization.

The keyword table is ordered: the first category with a substring hit in
the description or the payment type wins, so broader income keywords
("transfer", "credit") are shadowed by anything declared before them.
"""

from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from ..models import Category, DEFAULT_PAYMENT_TYPE


CATEGORY_KEYWORDS: Mapping[Category, Tuple[str, ...]] = MappingProxyType({
    # Income side
    Category.SALARY: ("salary", "wage", "payroll", "bonus", "incentive", "stipend"),
    Category.BUSINESS_INCOME: ("business", "revenue", "sales", "income", "earning", "profit"),
    Category.INVESTMENT: (
        "interest", "dividend", "investment", "return", "yield", "capital gain",
        "cma interest", "macquarie",
    ),
    Category.REFUND: ("refund", "return", "reimbursement", "cashback", "rebate"),
    Category.TRANSFER_IN: ("transfer", "deposit", "credit", "received", "incoming"),

    # Expense side
    Category.BUSINESS_EXPENSE: ("business", "office", "work", "professional", "corporate", "asic", "bpay"),
    Category.PERSONAL_EXPENSE: ("personal", "private", "individual"),
    Category.FUEL: ("petrol", "diesel", "fuel", "gas station", "pump"),
    Category.TRAVEL_TRANSPORT: (
        "uber", "ola", "bus", "train", "metro", "taxi", "flight", "hotel",
        "travel", "transport",
    ),
    Category.MEALS_ENTERTAINMENT: (
        "swiggy", "zomato", "restaurant", "food", "lunch", "dinner", "cafe",
        "pizza", "burger", "movie", "cinema", "netflix", "spotify",
        "entertainment", "game", "gaming",
    ),
    Category.OFFICE_SUPPLIES: ("stationery", "supplies", "equipment", "office", "work", "business"),
    Category.SOFTWARE_SUBSCRIPTIONS: ("software", "subscription", "saas", "app", "license", "premium"),
    Category.UTILITIES: (
        "electricity", "gas", "water", "phone", "internet", "mobile", "utility",
        "bill", "power",
    ),
    Category.MEDICAL: ("hospital", "doctor", "medical", "pharmacy", "medicine", "health", "clinic", "dental"),
    Category.EDUCATION: ("school", "college", "university", "education", "tuition", "course", "training", "book"),
    Category.INSURANCE: ("insurance", "premium", "policy", "coverage", "life insurance", "health insurance"),
    Category.SHOPPING: ("amazon", "flipkart", "myntra", "shopping", "mall", "store", "market", "retail", "purchase"),
    Category.LOAN_PAYMENT: ("loan", "emi", "installment", "repayment", "mortgage"),
    Category.MAINTENANCE: ("repair", "maintenance", "service", "fix", "upkeep"),
    Category.WITHDRAWAL: ("withdrawal", "cash", "atm", "withdraw"),
    Category.TRANSFER_OUT: ("transfer", "payment", "sent", "outgoing", "trustee", "non-con contribut"),
})

# Applied in order when no keyword matched.
PAYMENT_TYPE_FALLBACKS: Tuple[Tuple[str, Category], ...] = (
    ("upi", Category.BUSINESS_EXPENSE),
    ("transfer", Category.TRANSFER_OUT),
    ("withdrawal", Category.WITHDRAWAL),
    ("deposit", Category.TRANSFER_IN),
)

DEFAULT_CATEGORY = Category.BUSINESS_EXPENSE

PAYMENT_TYPE_HINTS: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("upi", "gpay", "phonepe", "paytm", "bhim"), "upi"),
    (("credit card", "card"), "credit_card"),
    (("cheque", "check", "chq"), "cheque"),
    (("cash", "atm"), "cash"),
    (("withdrawal",), "withdrawal"),
    (("deposit",), "deposit"),
    (("neft", "rtgs", "imps", "transfer", "bank"), "bank_transfer"),
    (("receipt",), "receipt"),
)


def classify(description: Optional[str], payment_type: Optional[str]) -> Category:
    """Assign exactly one category. Total and deterministic."""
    desc = (description or "").lower()
    kind = (payment_type or "").lower()

    for category, keywords in CATEGORY_KEYWORDS.items():
        if any(keyword in desc or keyword in kind for keyword in keywords):
            return category

    for token, category in PAYMENT_TYPE_FALLBACKS:
        if token in kind:
            return category

    return DEFAULT_CATEGORY


def normalize_payment_type(raw: Optional[str]) -> str:
    """Map a free-text payment method/type cell to a payment type hint."""
    text = (raw or "").strip().lower()
    if not text:
        return DEFAULT_PAYMENT_TYPE

    for tokens, hint in PAYMENT_TYPE_HINTS:
        if any(token in text for token in tokens):
            return hint

    return DEFAULT_PAYMENT_TYPE
