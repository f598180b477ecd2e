"""Random secrets for invite codes and invitation tokens."""
import secrets

# A group's shareable invite code (display only)
INVITE_CODE_BYTES = 16
# One-time invitation token, 512 bits
INVITATION_TOKEN_BYTES = 64


def random_token(byte_length):
    """Return *byte_length* cryptographically secure random bytes as hex."""
    return secrets.token_hex(byte_length)
