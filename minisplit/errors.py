# minisplit/errors.py


class ConfigurationError(Exception):
    """Run cannot start: bad arguments, unreadable inputs or an infeasible partition."""


class ParseError(ValueError):
    """A single record line could not be parsed."""
