"""FILALI EMPIRE CRM backend."""
