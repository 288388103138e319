"""khal-notify — desktop notifications for upcoming khal events.

Looks up the events khal reports at a target time, trims their descriptions
to a readable length and pops one desktop notification per event.

Packages:
    khal_notify.integrations  — khal and notify-send process adapters
    khal_notify.formatter     — description cleanup, truncation, link harvesting
    khal_notify.dispatcher    — concurrent per-event notification fan-out
    khal_notify.pipeline      — resolve → fetch → filter → format → dispatch
"""

__version__ = "1.0.0"
__description__ = "Checks khal and sends notifications for upcoming events."
