from __future__ import annotations

import dataclasses
import enum
from dataclasses import dataclass

SUBST_CHAR = "@"
DEFAULT_URI = "ldap://127.0.0.1"
DEFAULT_TIMEOUT_S = 10.0
DEFAULT_ITERATIONS = 10
DEFAULT_WORKERS = 5


class ConfigurationError(ValueError):
    """Raised when the run configuration cannot be used."""


class SearchScope(enum.Enum):
    BASE = "base"
    ONE = "one"
    SUB = "sub"
    CHILDREN = "children"

    @classmethod
    def parse(cls, value: str) -> "SearchScope":
        try:
            return cls(value)
        except ValueError:
            choices = ", ".join(f"'{scope.value}'" for scope in cls)
            raise ConfigurationError(
                f"Invalid scope {value!r}, must be one of {choices}"
            ) from None


@dataclass(frozen=True)
class Configuration:
    """Settings shared read-only by every worker of a run."""

    base_dn: str
    uri: str = DEFAULT_URI
    bind_dn: str | None = None
    password: str | None = None
    search_filter: str | None = None
    scope: SearchScope = SearchScope.ONE
    iterations: int = DEFAULT_ITERATIONS
    workers: int = DEFAULT_WORKERS
    timeout_s: float = DEFAULT_TIMEOUT_S
    rebind: bool = False
    ordered: bool = False
    decode_entries: bool = False
    names_file: str | None = None
    verbosity: int = 0
    print_stats: bool = False
    seed: int | None = None

    @property
    def substitute(self) -> bool:
        return self.names_file is not None

    @property
    def authenticated(self) -> bool:
        return self.bind_dn is not None and self.password is not None

    @property
    def total_searches(self) -> int:
        return self.iterations * self.workers

    def with_overrides(self, **changes) -> "Configuration":
        return dataclasses.replace(self, **changes)

    def validate(self) -> None:
        if not self.base_dn:
            raise ConfigurationError("No Base DN provided, use -b <base_dn>")

        if not self.uri.startswith(("ldap://", "ldaps://")):
            raise ConfigurationError(
                "Host must be specified with an LDAP URI e.g. ldap://127.0.0.1:389"
            )

        if self.ordered and not self.substitute:
            raise ConfigurationError("List of names needed to perform ordered search")

        if self.substitute and SUBST_CHAR not in self.base_dn and (
            not self.search_filter or SUBST_CHAR not in self.search_filter
        ):
            raise ConfigurationError(
                f"No substitution chars ({SUBST_CHAR}) found in filter or base DN"
            )

        if self.iterations < 0:
            raise ConfigurationError("Loop count must be >= 0")
        if self.workers < 1:
            raise ConfigurationError("Thread count must be >= 1")
        if self.timeout_s <= 0:
            raise ConfigurationError("Timeout must be > 0")


__all__ = [
    "SUBST_CHAR",
    "ConfigurationError",
    "Configuration",
    "SearchScope",
]
