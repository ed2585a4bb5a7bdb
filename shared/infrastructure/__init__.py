"""Django adapters shared by all apps."""
