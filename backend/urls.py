from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import path, include

from backend.core.views import home

admin.site.site_header = "LendingLoop Admin"
admin.site.site_title = "LendingLoop Admin"
admin.site.index_title = "Admin Home"

urlpatterns = [
    path("", home, name="home"),
    path("admin/", admin.site.urls),
    path("api/auth/", include("accounts.urls")),
    path("api/users/", include("users.urls")),
    path("api/loops/", include("loops.urls")),
    path("api/items/", include("items.urls")),
    path("api/itemrequests/", include("item_requests.urls")),
    path("api/notifications/", include("notifications.urls")),
]

if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
