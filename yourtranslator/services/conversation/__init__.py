"""Conversation state machine: command parsing, prompts, replies, routing.

Use explicit imports:
    from yourtranslator.services.conversation.router import ConversationRouter
"""
