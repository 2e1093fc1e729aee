from django.urls import include, path

urlpatterns = [
    path('', include('craftpricing.urls')),
]
