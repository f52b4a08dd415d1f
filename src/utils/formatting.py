"""Human readable formatting helpers for log messages."""

_SUFFIXES = ("K", "M", "B")


def format_number(num: int) -> str:
    """Abbreviate a count, e.g. ``1234567 -> "1.2 M"``.

    One decimal is shown only while the integer part has fewer than
    three digits; the value is truncated, not rounded.
    """
    num *= 10
    suffix_idx = -1
    while num >= 10000:
        num //= 1000
        suffix_idx += 1
    int_part, dec_part = divmod(num, 10)
    text = str(int_part)
    if dec_part and len(text) < 3:
        text += f".{dec_part}"
    if suffix_idx >= 0:
        text += f" {_SUFFIXES[suffix_idx]}"
    return text
