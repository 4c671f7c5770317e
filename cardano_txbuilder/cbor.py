"""
Selects the cbor2 implementation used for decoding.

The pure Python build (cbor2pure) is used by default because the tag 258 decoder
removal in :mod:`cardano_txbuilder.serialization` only applies to it.
Set the environment variable CBOR_C_EXTENSION=1 to decode with the C extension instead.
"""

import os

if os.getenv("CBOR_C_EXTENSION", "0") == "1":
    import cbor2  # noqa: F401
else:
    import cbor2pure as cbor2  # type: ignore  # noqa: F401
