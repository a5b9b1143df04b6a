from django.urls import path
from .views import PriceQuoteView, QuoteSettingsView

app_name = 'pricing'

urlpatterns = [
    path('quote/price', PriceQuoteView.as_view(), name='price-quote'),
    path('quote/settings', QuoteSettingsView.as_view(), name='quote-settings'),
]
