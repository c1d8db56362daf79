"""Users and categories consumed by newsletter generation and distribution."""
