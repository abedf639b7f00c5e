#
# src/tconsole/protocol.py
#
"""
Messages exchanged between the console and the server.

Every request carries an action tag plus the payload fields that action
needs. Replies are always a bool, a list of strings, or None.
"""

from collections.abc import Mapping, Sequence
from enum import Enum
from typing import Any, TypeAlias

from attrs import define, field

Response: TypeAlias = bool | list[str] | None


class Action(Enum):
    """Closed set of actions the server understands."""

    LOAD_ENVIRONMENT = "load_environment"
    RUN_ALL_TESTS = "run_all_tests"
    RUN_FILE_SET = "run_file_set"
    RUN_FAILED = "run_failed"
    SHOW_PERFORMANCE = "show_performance"
    RUN_INFO = "run_info"
    SET = "set"
    AUTOCOMPLETE = "autocomplete"
    EXIT = "exit"
    UNKNOWN = "unknown"  # Decoded from any tag not listed above.


def _to_tuple(value: Sequence[str] | None) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        raise TypeError("args must be a sequence of strings, not a single string")
    return tuple(str(item) for item in value)


@define(frozen=True, slots=True)
class Message:
    """A single console-to-server request."""

    action: Action
    args: tuple[str, ...] = field(default=(), converter=_to_tuple)
    set: str | None = field(default=None)
    limit: int | str | None = field(default=None)
    var: str | None = field(default=None)
    value: str | None = field(default=None)
    text: str = field(default="")
    tag: str | None = field(default=None, eq=False)  # raw tag, kept for UNKNOWN actions

    # --- Constructors, one per action ---
    @classmethod
    def load_environment(cls) -> "Message":
        return cls(Action.LOAD_ENVIRONMENT)

    @classmethod
    def run_all_tests(cls, args: Sequence[str] | None = None) -> "Message":
        return cls(Action.RUN_ALL_TESTS, args=args)

    @classmethod
    def run_file_set(cls, name: str) -> "Message":
        return cls(Action.RUN_FILE_SET, set=name)

    @classmethod
    def run_failed(cls) -> "Message":
        return cls(Action.RUN_FAILED)

    @classmethod
    def show_performance(cls, limit: int | str | None = None) -> "Message":
        return cls(Action.SHOW_PERFORMANCE, limit=limit)

    @classmethod
    def run_info(cls) -> "Message":
        return cls(Action.RUN_INFO)

    @classmethod
    def set_var(cls, var: str | None, value: str | None) -> "Message":
        return cls(Action.SET, var=var, value=value)

    @classmethod
    def autocomplete(cls, text: str) -> "Message":
        return cls(Action.AUTOCOMPLETE, text=text)

    @classmethod
    def exit(cls) -> "Message":
        return cls(Action.EXIT)

    # --- Wire shape ---
    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"action": self.tag or self.action.value}
        if self.args:
            data["args"] = list(self.args)
        for name in ("set", "limit", "var", "value"):
            attr = getattr(self, name)
            if attr is not None:
                data[name] = attr
        if self.text:
            data["text"] = self.text
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Message":
        tag = str(data.get("action", ""))
        try:
            action = Action(tag)
        except ValueError:
            action = Action.UNKNOWN
        if action is Action.UNKNOWN:
            return cls(Action.UNKNOWN, tag=tag)
        return cls(
            action,
            args=data.get("args"),
            set=data.get("set"),
            limit=data.get("limit"),
            var=data.get("var"),
            value=data.get("value"),
            text=str(data.get("text", "")),
        )


# 🔼⚙️
