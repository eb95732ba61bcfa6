from django.urls import path
from . import views

urlpatterns = [
    path('', views.OrderListCreateView.as_view(), name='orders'),
    path('<str:order_id>/', views.OrderDetailView.as_view(), name='order_detail'),
]
