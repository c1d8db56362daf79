"""Recipient resolution and email delivery for generated newsletters."""
