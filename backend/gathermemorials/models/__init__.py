from .user import User
from .memorial import Memorial
from .memorial_service import MemorialService
from .memorial_collaborator import MemorialCollaborator
from .guestbook_entry import GuestbookEntry
from .blocked_user import BlockedUser
from .prayer_list_entry import PrayerListEntry
from .media_asset import MediaAsset
from .payment import Payment
from .audit_log import AuditLog
from .reminder_preferences import ReminderPreferences
