"""Authentication and authorization.

Sessions are opaque bearer tokens. A token resolves to a registered user,
an anonymous session, or nobody; room access is decided from that
identity and the room's owner record.
"""
