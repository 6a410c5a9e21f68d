import django_filters

from .models import Notification, NOTIFICATION_TYPES


class NotificationFilter(django_filters.FilterSet):
    """
    ?type=ItemRequestApproved&is_read=false
    """
    type = django_filters.ChoiceFilter(choices=NOTIFICATION_TYPES)
    is_read = django_filters.BooleanFilter()

    class Meta:
        model = Notification
        fields = ["type", "is_read"]
