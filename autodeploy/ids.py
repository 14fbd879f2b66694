"""
Run identifiers.

A run id is `r-YYYYMMDD-hhmmss-xxxx` (local time plus four lowercase alphanumerics). Ids are
used as directory names under the work root, so anything that does not match is rejected.
"""

import random
import re
import string
from datetime import datetime
from typing import Optional

SUFFIX_ALPHABET = string.ascii_lowercase + string.digits
RUN_ID_RE = re.compile(r"r-\d{8}-\d{6}-[a-z0-9]{4}")


def new_run_id(now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    suffix = "".join(random.choices(SUFFIX_ALPHABET, k=4))
    return f"r-{now:%Y%m%d-%H%M%S}-{suffix}"


def is_valid_run_id(run_id: str) -> bool:
    return bool(run_id) and RUN_ID_RE.fullmatch(run_id) is not None
