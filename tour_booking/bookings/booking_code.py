import string
import uuid
from typing import Optional

CODE_ALPHABET = string.digits + string.ascii_uppercase
SUFFIX_LENGTH = 8
PREFIX_LENGTH = 3

def resolve_prefix(
    city_code: Optional[str],
    city_name: Optional[str],
    package_name: Optional[str]
) -> str:
    """Booking code prefix: city code, else city name, else package name"""
    if city_code and city_code.strip():
        return city_code.strip().upper()
    if city_name and city_name.strip():
        return city_name.strip()[:PREFIX_LENGTH].upper()
    if package_name and package_name.strip():
        return package_name.strip()[:PREFIX_LENGTH].upper()
    raise ValueError("Cannot derive a booking code prefix without a city or package name")

def random_suffix(length: int = SUFFIX_LENGTH) -> str:
    """Uppercase alphanumeric characters taken from a random UUID"""
    value = uuid.uuid4().int
    chars = []
    for _ in range(length):
        value, index = divmod(value, len(CODE_ALPHABET))
        chars.append(CODE_ALPHABET[index])
    return "".join(chars)

def generate_booking_code(
    city_code: Optional[str],
    city_name: Optional[str],
    package_name: Optional[str]
) -> str:
    """Human-readable booking reference, e.g. ``BDG-7K2Q9ZXA``"""
    prefix = resolve_prefix(city_code, city_name, package_name)
    return f"{prefix}-{random_suffix()}"
