"""Turn/action processing helpers.

Validation lives here so every mutating request, whatever its front end,
is checked by the same ordered pipeline before the registry writes anything.
"""
