import django_filters

from .models import ItemRequest, REQUEST_STATUS


class ItemRequestFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=REQUEST_STATUS)
    item = django_filters.NumberFilter(field_name="item_id")

    class Meta:
        model = ItemRequest
        fields = ["status", "item"]
