import random
import string


def _random_block(length: int = 8) -> str:
    """
    Return a random string of lowercase letters and digits.
    """
    alphabet = string.ascii_lowercase + string.digits
    return "".join(random.choices(alphabet, k=length))


def generate_id(prefix: str = "") -> str:
    """
    Generate a short opaque ID like 'k3v9q0zt' or 'EMP-k3v9q0zt'.

    IMPORTANT:
    - This function is used by SQLAlchemy as a column default.
    - SQLAlchemy will call it with **zero** positional arguments,
      so the function must work when called as `generate_id()`.
    """
    block = _random_block(8)
    if prefix:
        return f"{prefix}-{block}"
    return block
