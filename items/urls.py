from django.urls import path
from . import views

app_name = "items"

urlpatterns = [
    path("", views.ItemListCreateView.as_view(), name="list-create"),
    path("<int:item_id>", views.ItemDetailView.as_view(), name="detail"),
    path("<int:item_id>/image", views.ItemImageUploadView.as_view(), name="image"),
    path("<int:item_id>/visibility", views.ItemVisibilityView.as_view(), name="visibility"),
]
