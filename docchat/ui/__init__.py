"""NiceGUI interface - presentation layer for document chat.

Responsibilities:
    - Chat message display with paced answer reveal
    - Citation badges with a source preview dialog
    - Collection selection per question
    - Fast-forwarding the animation when the tab becomes visible again

Fetches complete answers from the API and paces them locally with
docchat.streaming; citation markers are resolved with docchat.citations.
"""
