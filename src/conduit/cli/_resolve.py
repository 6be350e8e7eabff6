"""Contract import resolution — resolves ``"module:attribute"`` strings to contracts.

Lets every ``conduit`` subcommand run against a user-defined contract
instead of the built-in task list.
"""

import importlib

from conduit.contract import Contract


def resolve_contract(import_string: str) -> Contract:
    """Resolve an import string to a ``Contract``.

    Accepts ``"module:attribute"`` format. When the attribute portion is
    omitted, defaults to ``"CONTRACT"``. A callable attribute is called
    (assuming it is a contract factory).

    Raises:
        ModuleNotFoundError: If the module cannot be imported.
        AttributeError: If the attribute does not exist on the module.
        TypeError: If the resolved object is not a ``Contract`` or callable.
    """
    module_path, _, attr_name = import_string.partition(":")
    if not attr_name:
        attr_name = "CONTRACT"

    module = importlib.import_module(module_path)
    obj = getattr(module, attr_name)

    if isinstance(obj, Contract):
        return obj
    if callable(obj):
        result = obj()
        if isinstance(result, Contract):
            return result
        msg = f"{import_string!r} returned {type(result).__name__}, expected a Contract"
        raise TypeError(msg)

    msg = f"{import_string!r} resolved to {type(obj).__name__}, expected a Contract"
    raise TypeError(msg)
