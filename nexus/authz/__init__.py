"""Authorization layer (connect-params driven).

Answers three questions for guest extensions:
- may the conversations page be shown
- may an outgoing chat be sent
- may an outgoing call be placed
"""
