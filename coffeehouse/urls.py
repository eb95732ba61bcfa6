from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView

urlpatterns = [
    path('api/auth/', include('accounts.urls')),
    path('api/menu/', include('catalog.urls')),
    path('api/orders/', include('orders.urls')),
    path('api/invoices/', include('invoices.urls')),
    path('api/payments/', include('payment.urls')),
    path('api/reviews/', include('reviews.urls')),
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='docs'),
]
