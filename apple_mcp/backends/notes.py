"""Apple Notes backend"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from apple_mcp.automation.osascript import run_jxa
from apple_mcp.backends import AutomationError, BackendId, BackendInitError
from apple_mcp.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_FOLDER = "Claude"

_ALL_NOTES_JXA = """
const Notes = Application('Notes');
return Notes.notes().map(note => ({name: note.name(), content: note.plaintext()}));
"""

_FIND_NOTES_JXA = """
const Notes = Application('Notes');
const found = Notes.notes.whose({_or: [
    {name: {_contains: args.searchText}},
    {plaintext: {_contains: args.searchText}}
]})();
return found.map(note => ({name: note.name(), content: note.plaintext()}));
"""

_CREATE_NOTE_JXA = """
const Notes = Application('Notes');
let folder = null;
const matches = Notes.folders.whose({name: args.folderName})();
if (matches.length > 0) {
    folder = matches[0];
} else if (args.isDefaultFolder) {
    folder = Notes.Folder({name: args.folderName});
    Notes.folders.push(folder);
    folder = Notes.folders.whose({name: args.folderName})()[0];
} else {
    return {success: false, message: `Folder "${args.folderName}" does not exist`};
}
const note = Notes.Note({name: args.title, body: args.body});
folder.notes.push(note);
return {success: true, message: `Created note "${args.title}" in folder "${args.folderName}"`};
"""


@dataclass
class Note:
    name: str
    content: str


@dataclass
class CreateNoteResult:
    success: bool
    message: str
    folder: str
    title: str


def _to_notes(raw) -> List[Note]:
    return [Note(name=str(n.get("name") or ""), content=str(n.get("content") or "")) for n in (raw or [])]


class NotesBackend:
    """Search, list and create notes"""

    def __init__(self, default_folder: str = DEFAULT_FOLDER):
        self.default_folder = default_folder

    async def check_access(self) -> None:
        try:
            await run_jxa("return Application('Notes').name();")
        except AutomationError as e:
            raise BackendInitError(
                BackendId.NOTES.value,
                "Cannot access Notes app. Please grant access in System Settings > "
                "Privacy & Security > Automation.",
            ) from e

    async def get_all_notes(self) -> List[Note]:
        return _to_notes(await run_jxa(_ALL_NOTES_JXA))

    async def find_note(self, search_text: str) -> List[Note]:
        """Notes whose title or text contains ``search_text``.

        When the scripted search finds nothing, returns the first note whose
        title contains the text case-insensitively.
        """
        notes = _to_notes(await run_jxa(_FIND_NOTES_JXA, {"searchText": search_text}))
        if notes:
            return notes
        needle = search_text.lower()
        for note in await self.get_all_notes():
            if needle in note.name.lower():
                return [note]
        return []

    async def create_note(
        self, title: str, body: str, folder_name: Optional[str] = None
    ) -> CreateNoteResult:
        folder = folder_name or self.default_folder
        result = await run_jxa(
            _CREATE_NOTE_JXA,
            {
                "title": title,
                "body": body,
                "folderName": folder,
                "isDefaultFolder": folder == self.default_folder,
            },
        ) or {}
        return CreateNoteResult(
            success=bool(result.get("success")),
            message=str(result.get("message") or "Failed to create note"),
            folder=folder,
            title=title,
        )


async def create(settings: Optional[Settings] = None) -> NotesBackend:
    backend = NotesBackend(settings.default_notes_folder if settings else DEFAULT_FOLDER)
    await backend.check_access()
    return backend
