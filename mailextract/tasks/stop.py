"""
Built-in task: STOP requests

Emits the sender of every message whose subject is exactly "stop" (any
case), so the address can be removed from a messaging list.
"""


def run(message, context):
    if message.subject.lower() == "stop":
        context.emit("from", message.sender)
