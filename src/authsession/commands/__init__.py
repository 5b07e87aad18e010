"""Built-in ``authsession`` sub-commands."""
