"""Balance reminder wording. Delivery belongs to the notification channel."""

from pydantic import BaseModel

from quantify.models.account import Account
from quantify.models.friend import Friend
from quantify.services.balance_engine import is_settled, to_money


class Reminder(BaseModel):
    to: str
    subject: str
    message: str


def compose_reminder(account: Account, friend: Friend) -> Reminder:
    balance = to_money(friend.balance)
    amount = f"${abs(balance):.2f}"

    if is_settled(balance):
        subject = "Quantify Update - We're all settled up!"
        body = (
            "Great news! We're all settled up on our bill splits.\n\n"
            "Thanks for being awesome to split bills with!"
        )
    elif balance > 0:
        subject = f"Quantify Reminder - You owe {amount}"
        body = (
            f"Just a friendly reminder that you owe me {amount} from our recent bill split.\n\n"
            "Please let me know when you can settle this amount."
        )
    else:
        subject = f"Quantify Update - I owe you {amount}"
        body = (
            f"I owe you {amount} from our recent bill split.\n\n"
            "Let me know how you'd like me to pay you back."
        )

    message = f"Hi {friend.name},\n\n{body}\n\nBest regards,\n{account.name}"
    return Reminder(to=friend.email, subject=subject, message=message)
