import random
import re
import string
import time
from datetime import datetime
from typing import Optional

_UPPER36 = string.ascii_uppercase + string.digits
_rng = random.SystemRandom()


def _digits(n: int) -> str:
    return "".join(_rng.choice(string.digits) for _ in range(n))


def _letters(n: int) -> str:
    return "".join(_rng.choice(string.ascii_uppercase) for _ in range(n))


def _chars(n: int) -> str:
    return "".join(_rng.choice(_UPPER36) for _ in range(n))


def _hex(n: int) -> str:
    return "".join(_rng.choice("0123456789ABCDEF") for _ in range(n))


def generate_sub_id(pattern: str, now: Optional[datetime] = None) -> str:
    """Expand a website format pattern such as ``ab-{date}-{random4digits}``.

    Supported tokens: {randomNdigits} {randomNletters} {randNchars} {hexN}
    {timestamp} {date} {year} {month} {day} {uuidSegment}. Anything else is
    copied through unchanged.
    """
    now = now or datetime.now()
    out = pattern
    out = re.sub(r"\{random(\d+)digits\}", lambda m: _digits(int(m.group(1))), out)
    out = re.sub(r"\{random(\d+)letters\}", lambda m: _letters(int(m.group(1))), out)
    out = re.sub(r"\{rand(\d+)chars\}", lambda m: _chars(int(m.group(1))), out)
    out = out.replace("{timestamp}", str(int(time.time() * 1000)))
    out = out.replace("{date}", now.strftime("%Y%m%d"))
    out = out.replace("{year}", now.strftime("%Y"))
    out = out.replace("{month}", now.strftime("%m"))
    out = out.replace("{day}", now.strftime("%d"))
    out = re.sub(r"\{uuidSegment\}", lambda _m: _chars(8), out)
    out = re.sub(r"\{hex(\d+)\}", lambda m: _hex(int(m.group(1))), out)
    return out
