"""
INR amount formatting.

Amounts are shown the way Indian users read them: the last three digits
are grouped, then every two digits (₹1,23,45,678.00).
"""


def group_indian(whole: int) -> str:
    """Group a non-negative integer with Indian digit grouping."""
    digits = str(whole)
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    pairs = []
    while len(head) > 2:
        pairs.insert(0, head[-2:])
        head = head[:-2]
    if head:
        pairs.insert(0, head)
    return ",".join(pairs + [tail])


def format_inr(amount: float, decimals: int = 2, symbol: bool = True) -> str:
    """
    Format an amount in rupees.

    >>> format_inr(123456.5)
    '₹1,23,456.50'
    >>> format_inr(-5000, decimals=0)
    '-₹5,000'
    """
    sign = "-" if round(amount, decimals) < 0 else ""
    fixed = f"{abs(amount):.{decimals}f}"
    whole, _, fraction = fixed.partition(".")
    text = group_indian(int(whole))
    if fraction:
        text += "." + fraction
    return f"{sign}{'₹' if symbol else ''}{text}"
