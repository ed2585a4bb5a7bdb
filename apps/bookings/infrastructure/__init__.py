"""Django ORM adapters for the scheduling engine."""
