"""Apple Mail backend.

Message queries are AppleScript programs that return a list of records;
osascript prints that list as brace-delimited text, which is decoded with
:mod:`apple_mcp.backends.records`.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from apple_mcp.automation.osascript import escape_applescript, run_applescript, run_jxa
from apple_mcp.backends import AutomationError, BackendId, BackendInitError
from apple_mcp.backends.records import decode, has_any_field
from apple_mcp.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10
CONTENT_PREVIEW_CHARS = 500

is_email_record = has_any_field("subject", "sender")


@dataclass
class Email:
    subject: str
    sender: str
    date_sent: str
    content: str
    is_read: bool
    mailbox: str


def record_to_email(record: Dict[str, str], account: Optional[str] = None, is_read: bool = False) -> Email:
    """Map one decoded record onto an :class:`Email`, filling display defaults."""
    mailbox = record.get("mailbox") or "Unknown"
    return Email(
        subject=record.get("subject") or "No subject",
        sender=record.get("sender") or "Unknown sender",
        date_sent=record.get("date") or datetime.now().strftime("%A, %B %d, %Y at %I:%M:%S %p"),
        content=record.get("content") or "[Content not available]",
        is_read=is_read,
        mailbox=f"{account} - {mailbox}" if account else mailbox,
    )


def _mailbox_filter(mailbox: Optional[str]) -> str:
    if not mailbox:
        return ""
    return f'''
            set mailboxesToSearch to {{}}
            repeat with mb in acctMailboxes
                if name of mb is "{escape_applescript(mailbox)}" then
                    set mailboxesToSearch to {{mb}}
                    exit repeat
                end if
            end repeat'''


def build_query_script(
    where_clause: str,
    limit: int,
    account: Optional[str] = None,
    mailbox: Optional[str] = None,
) -> str:
    """AppleScript collecting up to ``limit`` messages matching ``where_clause``.

    Without ``account`` every account is scanned and each record's mailbox
    is reported as ``"<account> - <mailbox>"``.
    """
    if account:
        accounts_expr = f'{{first account whose name is "{escape_applescript(account)}"}}'
        mailbox_label = "(name of mb)"
    else:
        accounts_expr = "every account"
        mailbox_label = '((name of acct) & " - " & (name of mb))'
    return f'''
tell application "Mail"
    set resultList to {{}}
    try
        repeat with acct in {accounts_expr}
            set acctMailboxes to every mailbox of acct
            set mailboxesToSearch to acctMailboxes{_mailbox_filter(mailbox)}
            repeat with mb in mailboxesToSearch
                try
                    set foundMessages to (messages of mb whose {where_clause})
                    set msgLimit to {limit} - (count of resultList)
                    if (count of foundMessages) < msgLimit then
                        set msgLimit to (count of foundMessages)
                    end if
                    repeat with i from 1 to msgLimit
                        try
                            set currentMsg to item i of foundMessages
                            set msgData to {{subject:(subject of currentMsg), sender:(sender of currentMsg), ¬
                                date:(date sent of currentMsg) as string, mailbox:{mailbox_label}}}
                            try
                                set msgContent to content of currentMsg
                                if length of msgContent > {CONTENT_PREVIEW_CHARS} then
                                    set msgContent to (text 1 thru {CONTENT_PREVIEW_CHARS} of msgContent) & "..."
                                end if
                                set msgData to msgData & {{content:msgContent}}
                            on error
                                set msgData to msgData & {{content:"[Content not available]"}}
                            end try
                            set end of resultList to msgData
                        end try
                    end repeat
                    if (count of resultList) ≥ {limit} then exit repeat
                end try
            end repeat
            if (count of resultList) ≥ {limit} then exit repeat
        end repeat
    on error errMsg
        return "Error: " & errMsg
    end try
    return resultList
end tell'''


class MailBackend:
    """Read, search and send mail"""

    async def check_access(self) -> None:
        try:
            await run_applescript('tell application "Mail" to get name of every account')
        except AutomationError as e:
            raise BackendInitError(
                BackendId.MAIL.value,
                "Cannot access Mail app. Please grant access in System Settings > "
                "Privacy & Security > Automation.",
            ) from e

    async def _query(
        self,
        where_clause: str,
        limit: Optional[int],
        account: Optional[str],
        mailbox: Optional[str],
        is_read: bool = False,
    ) -> List[Email]:
        script = build_query_script(where_clause, limit or DEFAULT_LIMIT, account, mailbox)
        output = await run_applescript(script)
        if output.startswith("Error:"):
            raise AutomationError(output)
        return [record_to_email(r, account, is_read) for r in decode(output, is_email_record)]

    async def _scoped_query(
        self,
        where_clause: str,
        limit: Optional[int],
        account: Optional[str],
        mailbox: Optional[str],
        is_read: bool = False,
    ) -> List[Email]:
        if account:
            try:
                return await self._query(where_clause, limit, account, mailbox, is_read)
            except AutomationError as e:
                logger.warning(f"Mail query in account {account!r} failed, retrying across all accounts: {e}")
        return await self._query(where_clause, limit, None, None, is_read)

    async def get_unread_mails(
        self,
        limit: Optional[int] = None,
        account: Optional[str] = None,
        mailbox: Optional[str] = None,
    ) -> List[Email]:
        return await self._scoped_query("read status is false", limit, account, mailbox)

    async def search_mails(
        self,
        search_term: str,
        limit: Optional[int] = None,
        account: Optional[str] = None,
        mailbox: Optional[str] = None,
    ) -> List[Email]:
        term = escape_applescript(search_term)
        where = f'(subject contains "{term}") or (content contains "{term}")'
        return await self._scoped_query(where, limit, account, mailbox, is_read=True)

    async def send_mail(
        self,
        to: str,
        subject: str,
        body: str,
        cc: Optional[str] = None,
        bcc: Optional[str] = None,
        account: Optional[str] = None,
    ) -> str:
        """Send a message, from ``account`` when given. Returns a confirmation line."""
        if account:
            try:
                await self._send(to, subject, body, cc, bcc, account)
                return f'Email sent from account "{account}" to {to} with subject "{subject}"'
            except AutomationError as e:
                logger.warning(f"Sending from account {account!r} failed, using default account: {e}")
        await self._send(to, subject, body, cc, bcc, None)
        return f'Email sent to {to} with subject "{subject}"'

    async def _send(
        self,
        to: str,
        subject: str,
        body: str,
        cc: Optional[str],
        bcc: Optional[str],
        account: Optional[str],
    ) -> None:
        lines = []
        if account:
            lines.append(
                f'set sender to email address of (first account whose name is "{escape_applescript(account)}")'
            )
        lines.append(f'make new to recipient with properties {{address:"{escape_applescript(to)}"}}')
        if cc:
            lines.append(f'make new cc recipient with properties {{address:"{escape_applescript(cc)}"}}')
        if bcc:
            lines.append(f'make new bcc recipient with properties {{address:"{escape_applescript(bcc)}"}}')
        recipients = "\n            ".join(lines)
        script = f'''
tell application "Mail"
    try
        set newMessage to make new outgoing message with properties ¬
            {{subject:"{escape_applescript(subject)}", content:"{escape_applescript(body)}", visible:true}}
        tell newMessage
            {recipients}
        end tell
        send newMessage
        return "success"
    on error errMsg
        return "Error: " & errMsg
    end try
end tell'''
        output = await run_applescript(script)
        if output.startswith("Error:"):
            raise AutomationError(output)

    async def get_mailboxes(self) -> List[str]:
        names = await run_jxa("return Application('Mail').mailboxes().map(mb => mb.name());")
        return [str(n) for n in names or []]

    async def get_mailboxes_for_account(self, account: str) -> List[str]:
        body = """
const matches = Application('Mail').accounts.whose({name: args.account})();
if (matches.length === 0) return [];
return matches[0].mailboxes().map(mb => mb.name());
"""
        names = await run_jxa(body, {"account": account})
        return [str(n) for n in names or []]

    async def get_accounts(self) -> List[str]:
        names = await run_jxa("return Application('Mail').accounts().map(acct => acct.name());")
        return [str(n) for n in names or []]


async def create(settings: Optional[Settings] = None) -> MailBackend:
    backend = MailBackend()
    await backend.check_access()
    return backend
