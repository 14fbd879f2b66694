"""
Recoverable Terraform failure signatures.

Each signature is a fixed set of substrings that must all occur in the combined command
output. Matching is plain substring co-occurrence so tests can assert on the constants.
"""

import re
from dataclasses import dataclass
from typing import Optional, Tuple

from autodeploy.iac.stacks import SAMPLE_TABLE_ADDRESS, SAMPLE_TABLE_NAME


@dataclass(frozen=True)
class FailureSignature:
    id: str
    substrings: Tuple[str, ...]
    hint: str

    def matches(self, output: str) -> bool:
        return bool(output) and all(s in output for s in self.substrings)


# Another run holds the DynamoDB lock on the remote state
STATE_LOCK_CONFLICT = FailureSignature(
    id="state_lock_conflict",
    substrings=("Error acquiring the state lock", "ConditionalCheckFailedException"),
    hint="Remote state is locked by another run; force-unlocking and retrying once",
)

# The fixed-name sample table survived a previous run outside the current state
TABLE_ALREADY_EXISTS = FailureSignature(
    id="table_already_exists",
    substrings=("Table already exists", SAMPLE_TABLE_NAME),
    hint="Sample table already exists; importing it into state and retrying once",
)

# "Lock Info:" block, e.g. "  ID:        3f2a8c1e-5b7d-..."
LOCK_ID_RE = re.compile(r"^\s*ID:\s+([0-9A-Za-z-]+)\s*$", re.MULTILINE)

TABLE_IMPORT = (SAMPLE_TABLE_ADDRESS, SAMPLE_TABLE_NAME)


def extract_lock_id(output: str) -> Optional[str]:
    """
    Return the lock ID of a state-lock conflict, or None when the output is not one.

    A conflict without an embedded lock ID cannot be force-unlocked and is not a match.
    """
    if not STATE_LOCK_CONFLICT.matches(output):
        return None
    match = LOCK_ID_RE.search(output)
    return match.group(1) if match else None


def is_table_conflict(output: str) -> bool:
    return TABLE_ALREADY_EXISTS.matches(output)
