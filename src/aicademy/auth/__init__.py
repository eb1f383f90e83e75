"""Auth provider package: identities, credentials and sessions."""
