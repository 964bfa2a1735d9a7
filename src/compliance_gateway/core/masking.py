"""
Masking helpers for values that end up in log lines.

Recipients are email addresses and API keys are bearer secrets; neither is
written to logs verbatim.
"""


def mask_email(email: str) -> str:
    """
    Mask email addresses in format: e*****e@email.com for example@email.com

    Args:
        email: Email address to mask

    Returns:
        Masked email string
    """
    if not email or "@" not in email:
        return "****"

    local_part, domain = email.split("@", 1)
    if not local_part or not domain:
        return "****"

    if len(local_part) <= 2:
        # Very short local part, mask completely
        masked_local = "****"
    else:
        middle_stars = "*" * min(5, len(local_part) - 2)  # Max 5 stars
        masked_local = f"{local_part[0]}{middle_stars}{local_part[-1]}"

    return f"{masked_local}@{domain}"


def mask_key(value: str, keep_prefix: int = 8) -> str:
    """Keep a short prefix of a secret-ish value for correlation."""
    if not value or len(value) < keep_prefix:
        return "invalid"
    return value[:keep_prefix] + "..."
