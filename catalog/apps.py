from django.apps import AppConfig


class CatalogConfig(AppConfig):
    """Django AppConfig for the program catalog."""
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'catalog'
