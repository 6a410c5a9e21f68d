from django.apps import AppConfig


class ItemRequestsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'item_requests'
