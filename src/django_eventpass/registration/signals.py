"""Custom signals for the registration app.

Signals:
    registration_confirmed: Sent after a paid registration transitions to
        CONFIRMED and the transaction has committed. Not sent for replays
        or for free registrations, which are created already confirmed.
        Sender: The ``Registration`` class.
        Kwargs:
            registration: The confirmed ``Registration`` instance.
            payment_id: The gateway payment id recorded on it.
"""

from django.dispatch import Signal

registration_confirmed = Signal()
