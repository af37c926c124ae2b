"""Built-in components.

* ``CronComponent`` — time-based consumer (``cron:*/5 * * * *``).
* ``EmailComponent`` — outbound mail producer (``email:ops?to=...``).
* ``LocalFileComponent`` — JSON file producer (``file:audit``).
"""

from dromedary.components.cron import CronComponent, CronSchedule
from dromedary.components.email import EmailComponent, EmailMessage, EmailOptions, smtp_sender
from dromedary.components.local_file import LocalFileComponent

__all__ = [
    "CronComponent",
    "CronSchedule",
    "EmailComponent",
    "EmailMessage",
    "EmailOptions",
    "LocalFileComponent",
    "smtp_sender",
]
