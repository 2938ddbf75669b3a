"""Constants for focus-pin configuration and limits."""

import re
from typing import Final

# ============================================================================
# Domains and masks
# ============================================================================

PRIVILEGED_DOMAIN: Final[str] = "Domain-0"
"""Name the hypervisor and the window watcher use for dom0."""

DEFAULT_BOOST_MASK: Final[str] = "all"
"""Cores a focused VM is pinned to. Can be narrowed to e.g. a range of P-cores."""

DEFAULT_IGNORE_MASK: Final[str] = "all"
"""VMs already pinned to this mask are left alone.
Equal to DEFAULT_BOOST_MASK so unpinned VMs aren't redundantly boosted."""

VM_NAME_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[a-zA-Z0-9_-]+$")
"""Valid VM identifier (anything else from the watcher is noise)."""

PIN_MASK_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[a-zA-Z0-9_\s,-]+$")
"""Valid affinity column value in `xl vcpu-list` output."""

CONFIG_MASK_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[a-zA-Z0-9_,-]+$")
"""Valid user-supplied mask (single token, passed as one argv element)."""

# ============================================================================
# Hypervisor (xl)
# ============================================================================

XL_AFFINITY_COLUMN: Final[int] = 6
"""Zero-based column of the hard affinity in `xl vcpu-list` rows:
Name ID VCPU CPU State Time(s) Affinity(Hard) / Affinity(Soft)."""

HYPERVISOR_COMMAND_TIMEOUT_SECONDS: Final[float] = 10.0
"""Timeout for a single xl invocation."""

# ============================================================================
# Window watcher (xprop)
# ============================================================================

XPROP_WINDOW_ID_FIELD: Final[int] = 4
"""Zero-based field of the window id in `_NET_ACTIVE_WINDOW: window id # 0x...`."""

XPROP_NULL_WINDOW: Final[str] = "0x0"
"""Active window id reported when the root window / dom0 desktop has focus."""

XPROP_LOOKUP_TIMEOUT_SECONDS: Final[float] = 5.0
"""Timeout for resolving one window id to a VM name."""

WATCHER_TERM_TIMEOUT_SECONDS: Final[float] = 3.0
WATCHER_KILL_TIMEOUT_SECONDS: Final[float] = 2.0

# ============================================================================
# Boost lifecycle
# ============================================================================

RELEASE_TIMEOUT_SECONDS: Final[float] = 15.0
"""Upper bound on waiting for a boost task to restore its VM's mask.
Must exceed HYPERVISOR_COMMAND_TIMEOUT_SECONDS."""

RELEASE_CANCEL_GRACE_SECONDS: Final[float] = 2.0
"""How long a release waits for a timed-out boost task to finish cancelling."""

# ============================================================================
# Supervisor restart backoff
# ============================================================================

RESTART_BACKOFF_MIN_SECONDS: Final[float] = 0.5
RESTART_BACKOFF_MAX_SECONDS: Final[float] = 30.0
RESTART_BACKOFF_MULTIPLIER: Final[float] = 0.5

# ============================================================================
# Exit codes
# ============================================================================

EXIT_SUCCESS: Final[int] = 0
EXIT_RUNTIME_ERROR: Final[int] = 1
EXIT_ENVIRONMENT_ERROR: Final[int] = 2
