"""Core constants: sentinel sort keys, separator, tombstone and storage naming.

Single source of truth for the composite-entry layout. Used by the key
codec, the Lua procedures and both store implementations.
"""

# Sentinel sort keys. Real sort keys are fixed-width block height, sequencer
# value and hash, so these bracket every legal version lexicographically.
GENESIS_SORT_KEY = (
    "000000000000,0000000000000,"
    "0000000000000000000000000000000000000000000000000000000000000000"
)
LAST_POSSIBLE_SORT_KEY = (
    "999999999999,9999999999999,"
    "zzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzz"
)

# Delimiter between key and sort key inside a composite entry. Must sort
# below every character allowed in a key (ASCII unit separator).
DEFAULT_SEPARATOR = "\x1f"

# Reserved payload for deleted versions. JSON never serializes to zero bytes.
TOMBSTONE = b""

# Storage naming: values live at "<namespace>.<entry>", the index at "<namespace>.keys".
NAMESPACE_DELIMITER = "."
INDEX_SUFFIX = "keys"

# Lexicographic range bound syntax of the backing store.
LEX_INCLUSIVE = "["
LEX_EXCLUSIVE = "("
LEX_MIN = "-"
LEX_MAX = "+"

# Retention defaults.
DEFAULT_MIN_RETAINED = 10
DEFAULT_MAX_RETAINED = 10
