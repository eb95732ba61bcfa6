from django.urls import path
from . import views

urlpatterns = [
    path('', views.MenuView.as_view(), name='menu'),
    path('<str:item_id>/', views.MenuItemAvailabilityView.as_view(), name='menu_item'),
]
