# budget_tracker/core/categorizer.py
DEFAULT_CATEGORY = "Others"

# Checked in order; the first category with a matching keyword wins.
# "message" keywords are looked up in the whole SMS, "merchant" keywords only
# in the extracted merchant name.
CATEGORY_KEYWORDS = {
    "Food & Dining": {
        "message": ["swiggy", "zomato"],
        "merchant": ["restaurant", "cafe", "food"],
    },
    "Shopping": {
        "message": ["amazon", "flipkart"],
        "merchant": ["mall", "store"],
    },
    "Transportation": {
        "message": ["uber", "ola", "petrol", "fuel"],
        "merchant": [],
    },
    "Utilities": {
        "message": ["electricity", "water", "gas", "internet"],
        "merchant": [],
    },
    "Entertainment": {
        "message": ["netflix", "prime", "movie"],
        "merchant": ["cinema"],
    },
    "Healthcare": {
        "message": ["pharmacy", "hospital", "doctor"],
        "merchant": ["medical"],
    },
}


def suggest_category(merchant, message, keywords=None):
    message_lower = (message or "").lower()
    merchant_lower = (merchant or "").lower()
    for cat, scopes in (keywords or CATEGORY_KEYWORDS).items():
        for kw in scopes.get("message", []):
            if kw.lower() in message_lower:
                return cat
        for kw in scopes.get("merchant", []):
            if kw.lower() in merchant_lower:
                return cat
    return DEFAULT_CATEGORY
