from django.urls import path
from . import views

urlpatterns = [
    path('', views.InvoiceListCreateView.as_view(), name='invoices'),
    path('<str:invoice_id>/', views.InvoiceDetailView.as_view(), name='invoice_detail'),
]
