"""Root-level conftest.py: make the in-tree Actions SDK importable.

The SDK lives under packages/actions-sdk. When the project is not installed
(or installed from another checkout), prepend this checkout's copy to
sys.path so tests always exercise the local SDK.
"""

import sys
from pathlib import Path

_local_sdk = str(Path(__file__).parent / "packages" / "actions-sdk")
if _local_sdk not in sys.path:
    sys.path.insert(0, _local_sdk)

# Drop any already-imported copy so the local one is picked up
for _mod in list(sys.modules):
    if _mod == "actions_sdk" or _mod.startswith("actions_sdk."):
        del sys.modules[_mod]
