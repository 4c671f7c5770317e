"""typeguard entry points that can be switched off through the environment."""

import os

import typeguard

NO_TYPE_CHECK_ENV = "CARDANO_TXBUILDER_NO_TYPE_CHECK"


def type_check_enabled() -> bool:
    return os.getenv(NO_TYPE_CHECK_ENV, "").lower() not in ("1", "true")


def typechecked(target=None, **kwargs):
    """``typeguard.typechecked``, or a no-op when type checks are disabled."""
    if not type_check_enabled():
        return target if target is not None else (lambda t: t)
    if target is None:
        return typeguard.typechecked(**kwargs)
    return typeguard.typechecked(target, **kwargs)


def check_type(value, expected_type):
    """``typeguard.check_type``, or a no-op when type checks are disabled."""
    if type_check_enabled():
        typeguard.check_type(value, expected_type)
