from __future__ import annotations

import logging
import re
import sys
from typing import Callable, Dict, List, Optional, Sequence, TextIO

from common.config import NUM_SLOTS, Settings
from common.text import parse_inline_entries
from picker.session import ClassroomSession
from state.list_store import ImportStrategy
from state.models import AllocatorSlot
from state.results import AllocationResult, Outcome, PickResult, Status

logger = logging.getLogger(__name__)

Confirm = Callable[[str], bool]

DEFAULT_PICKER = "picker-0"

_IMPORT_STRATEGIES: Dict[str, ImportStrategy] = {"replace": "replace", "merge": "merge"}

_HELP_RE = re.compile(r"^\s*/help\s*$", re.IGNORECASE)
_PICK_RE = re.compile(r"^\s*/pick\s*$", re.IGNORECASE)
_RESET_RE = re.compile(r"^\s*/reset\s*$", re.IGNORECASE)
_EDIT_RE = re.compile(r"^\s*/edit(?:\s+(.*))?$", re.IGNORECASE | re.DOTALL)
_USE_RE = re.compile(r"^\s*/use\s+(.+?)\s*$", re.IGNORECASE)
_PICKER_RE = re.compile(r"^\s*/picker(?:\s+(\S+))?\s*$", re.IGNORECASE)
_LISTS_RE = re.compile(r"^\s*/lists\s*$", re.IGNORECASE)
_SHOW_RE = re.compile(r"^\s*/show\s+(.+?)\s*$", re.IGNORECASE)
_SAVE_RE = re.compile(r"^\s*/save\s+(.+?)\s*$", re.IGNORECASE)
_DELETE_RE = re.compile(r"^\s*/delete\s+(.+?)\s*$", re.IGNORECASE)
_EXPORT_RE = re.compile(r"^\s*/export(?:\s+(\S+))?\s*$", re.IGNORECASE)
_IMPORT_RE = re.compile(r"^\s*/import\s+(\S+)(?:\s+(replace|merge))?\s*$", re.IGNORECASE)
_RELOAD_RE = re.compile(r"^\s*/reload\s*$", re.IGNORECASE)
_SEVEN_RE = re.compile(r"^\s*/seven\s*$", re.IGNORECASE)
_RANDOMIZE_RE = re.compile(r"^\s*/randomize\s*$", re.IGNORECASE)
_LOCK_RE = re.compile(r"^\s*/lock\s+(\d+)\s*$", re.IGNORECASE)
_NAME_RE = re.compile(r"^\s*/name\s+(\d+)(?:\s+(.*?))?\s*$", re.IGNORECASE)
_CLEAR_RE = re.compile(r"^\s*/clear\s*$", re.IGNORECASE)
_SOURCE_RE = re.compile(r"^\s*/source(?:\s+(.+?))?\s*$", re.IGNORECASE)

HELP_TEXT = """Random Picker
  /pick                 pick from the current picker's list
  /reset                start the current picker over
  /edit a, b, c         replace the current picker's list
  /use NAME             load a saved list into the current picker
  /picker [ID]          switch to (or create) another picker
Saved lists
  /lists  /show NAME  /save NAME  /delete NAME  /reload
  /export [PATH]        write all lists to a JSON file
  /import PATH [replace|merge]
The 7 Pickers
  /seven                show the slots
  /randomize            fill every unlocked slot
  /lock N               lock or unlock slot N (1-7)
  /name N [TEXT]        set slot N by hand
  /clear                empty all slots
  /source [NAME]        show or choose the student list"""


def render_pick(result: PickResult) -> str:
    if result.status is Status.EMPTY_SOURCE:
        return "Add some items first!"
    if result.cycled:
        return f"🎲 {result.entry}\nAll items picked! /pick starts over."
    return f"🎲 {result.entry}\n{result.remaining} remaining"


def render_slots(slots: Sequence[AllocatorSlot], source: Optional[str]) -> str:
    header = f"The 7 Pickers ({source})" if source else "The 7 Pickers (no student list)"
    lines = [header]
    for index, slot in enumerate(slots):
        name = slot.name or "(empty)"
        mark = " 🔒" if slot.locked else ""
        lines.append(f"{index + 1}. {name}{mark}")
    return "\n".join(lines)


def render_allocation(result: AllocationResult) -> Optional[str]:
    if result.status is Status.EMPTY_SOURCE:
        return "No students in list! Use /source to choose a student list."
    if result.status is Status.INSUFFICIENT_CANDIDATES:
        return (
            "Not enough students available to fill all unlocked slots! "
            f"({result.available} available, {result.needed} needed)"
        )
    return None


def _render_outcome(outcome: Outcome) -> str:
    if outcome.ok:
        return outcome.message or "Done."
    return f"⚠️ {outcome.message}"


def _parse_slot(raw: str) -> Optional[int]:
    """Convert a 1-based slot number from the user into an index."""
    n = int(raw)
    if 1 <= n <= NUM_SLOTS:
        return n - 1
    return None


def _deny(_question: str) -> bool:
    return False


class ConsoleAdapter:
    """
    Text front end for a ClassroomSession.

    - `handle(line)` runs one slash command and returns the text to show.
    - Slot views are re-rendered only after an allocator change has fully
      completed (via `subscribe`), never mid-mutation.
    - Destructive commands ask `confirm` first; the default declines, so a
      non-interactive caller must opt in explicitly.
    """

    def __init__(self, session: ClassroomSession, *, confirm: Optional[Confirm] = None) -> None:
        self._session = session
        self._confirm = confirm or _deny
        self._texts: Dict[str, List[str]] = {}
        self._current = session.create_picker(DEFAULT_PICKER)
        self._texts[self._current] = []
        self._slots_dirty = False
        session.allocator.subscribe(self._on_slots_changed)

    @property
    def current_picker(self) -> str:
        return self._current

    def entries(self, handle: Optional[str] = None) -> List[str]:
        return list(self._texts.get(handle or self._current, []))

    def handle(self, line: str) -> str:
        self._slots_dirty = False
        try:
            reply = self._dispatch(line)
        except ValueError as ex:
            reply = f"⚠️ {ex}"
        if self._slots_dirty:
            reply = f"{reply}\n{self._render_slots()}" if reply else self._render_slots()
        return reply

    # -------- Dispatch --------
    def _dispatch(self, line: str) -> str:
        text = line or ""
        if _HELP_RE.match(text):
            return HELP_TEXT

        # Random Picker
        if _PICK_RE.match(text):
            return render_pick(self._session.pick(self._current, self._texts[self._current]))
        if _RESET_RE.match(text):
            self._session.reset(self._current)
            return "Picker reset."
        m = _EDIT_RE.match(text)
        if m:
            self._texts[self._current] = parse_inline_entries(m.group(1) or "")
            return f"{len(self._texts[self._current])} item(s) in {self._current}."
        m = _USE_RE.match(text)
        if m:
            return self._use_list(m.group(1))
        m = _PICKER_RE.match(text)
        if m:
            return self._switch_picker(m.group(1))

        # Saved lists
        if _LISTS_RE.match(text):
            names = sorted(self._session.lists.list_names())
            return "Saved lists: " + ", ".join(names) if names else "No saved lists."
        m = _SHOW_RE.match(text)
        if m:
            entries = self._session.lists.get(m.group(1))
            if entries is None:
                return f'No list named "{m.group(1)}".'
            return f"{m.group(1)} ({len(entries)}): " + ", ".join(entries)
        m = _SAVE_RE.match(text)
        if m:
            if not self._texts[self._current]:
                return "Cannot save an empty list!"
            return _render_outcome(self._session.lists.save_list(m.group(1), self._texts[self._current]))
        m = _DELETE_RE.match(text)
        if m:
            return self._delete_list(m.group(1))
        m = _EXPORT_RE.match(text)
        if m:
            return _render_outcome(self._session.lists.export_to(m.group(1)))
        m = _IMPORT_RE.match(text)
        if m:
            return self._import(m.group(1), (m.group(2) or "merge").lower())
        if _RELOAD_RE.match(text):
            self._session.reload()
            return f"Reloaded {len(self._session.lists)} list(s)."

        # The 7 Pickers
        if _SEVEN_RE.match(text):
            return self._render_slots()
        if _RANDOMIZE_RE.match(text):
            return render_allocation(self._session.allocator.randomize_unlocked()) or ""
        m = _LOCK_RE.match(text)
        if m:
            index = _parse_slot(m.group(1))
            if index is None:
                return f"Slot must be 1-{NUM_SLOTS}."
            self._session.allocator.toggle_lock(index)
            return ""
        m = _NAME_RE.match(text)
        if m:
            index = _parse_slot(m.group(1))
            if index is None:
                return f"Slot must be 1-{NUM_SLOTS}."
            self._session.allocator.set_occupant(index, m.group(2) or "")
            return ""
        if _CLEAR_RE.match(text):
            if not self._confirm(f"Clear all {NUM_SLOTS} pickers?"):
                return "Cancelled."
            self._session.allocator.clear_all()
            return ""
        m = _SOURCE_RE.match(text)
        if m:
            return self._source(m.group(1))

        return "Unknown command. Try /help."

    # -------- Commands --------
    def _use_list(self, name: str) -> str:
        entries = self._session.lists.get(name)
        if entries is None:
            return f'No list named "{name}".'
        self._texts[self._current] = entries
        self._session.reset(self._current)
        return f'Loaded "{name}" ({len(entries)} item(s)) into {self._current}.'

    def _switch_picker(self, handle: Optional[str]) -> str:
        if not handle:
            return f"Current picker: {self._current}"
        self._current = self._session.create_picker(handle)
        self._texts.setdefault(self._current, [])
        return f"Switched to {self._current}."

    def _delete_list(self, name: str) -> str:
        if name not in self._session.lists:
            return f'No list named "{name}".'
        if not self._confirm(f'Delete list "{name}"?'):
            return "Cancelled."
        return _render_outcome(self._session.lists.delete_list(name))

    def _import(self, path: str, strategy: str) -> str:
        chosen = _IMPORT_STRATEGIES.get(strategy)
        if chosen is None:
            return "Import mode must be replace or merge."
        if chosen == "replace" and not self._confirm("Replace existing lists?"):
            return "Cancelled."
        return _render_outcome(self._session.lists.import_file(path, chosen))

    def _source(self, name: Optional[str]) -> str:
        allocator = self._session.allocator
        if name:
            resolved, entries = allocator.switch_source_list(name)
            if resolved != name:
                fallback = f' Using "{resolved}".' if resolved else ""
                return f'No list named "{name}".{fallback}'
            return f'Using "{resolved}" ({len(entries)} students).'
        candidates = list(allocator.candidate_lists())
        if not candidates:
            return "No student lists found - save a list with \"Students\" in its name."
        resolved, _ = allocator.resolve_source_list()
        return "Student lists: " + ", ".join(
            f"*{c}" if c == resolved else c for c in candidates
        )

    # -------- Rendering --------
    def _on_slots_changed(self) -> None:
        self._slots_dirty = True

    def _render_slots(self) -> str:
        allocator = self._session.allocator
        resolved, _ = allocator.resolve_source_list()
        return render_slots(allocator.slots, resolved)


def _prompt_confirm(question: str) -> bool:
    try:
        answer = input(f"{question} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def main(*, stdin: TextIO = sys.stdin, stdout: TextIO = sys.stdout) -> int:
    settings = Settings.from_env()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    session = ClassroomSession.open(settings)
    console = ConsoleAdapter(session, confirm=_prompt_confirm)
    print(HELP_TEXT, file=stdout)
    for line in stdin:
        if line.strip().lower() in ("/quit", "/exit"):
            break
        if not line.strip():
            continue
        print(console.handle(line.rstrip("\n")), file=stdout)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
