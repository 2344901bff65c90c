"""NiceGUI interface - thin presentation layer over the chat controller.

Responsibilities:
    - Chat message display with live streaming output
    - File attachments staged for the next send
    - Settings panel for model and sampling parameters
    - Toast notifications for errors and status changes

Holds no conversation logic. Every send, cancel and reset goes through
StreamingController.
"""
