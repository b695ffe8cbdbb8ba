SUPPORTED_CURRENCY_CATALOG: list[tuple[str, str]] = [
    ("LKR", "Sri Lankan Rupee"),
    ("USD", "US Dollar"),
    ("EUR", "Euro"),
]

SUPPORTED_CURRENCY_CODES = {code for code, _name in SUPPORTED_CURRENCY_CATALOG}

PRICE_TYPES = ("retail", "wholesale", "distributor", "special")


def normalize_currency_code(value: str) -> str:
    return (value or "").strip().upper()


def normalize_price_type(value: str) -> str:
    return (value or "").strip().lower()
