from django.urls import path

from . import views

urlpatterns = [
    path('api/product-types/', views.product_types_view, name='product_types'),
    path('api/materials/', views.materials_view, name='materials'),
    path('api/materials/import/', views.material_import_view, name='material_import'),
    path('api/materials/<int:material_id>/', views.material_detail_view, name='material_detail'),
    path('api/products/', views.products_view, name='products'),
    path('api/products/table/', views.product_table_view, name='product_table'),
    path('api/products/export.csv', views.product_export_view, name='product_export'),
    path('api/products/<int:product_id>/', views.product_detail_view, name='product_detail'),
    path('api/products/<int:product_id>/edit/', views.product_edit_view, name='product_edit'),
    path('api/selections/<slug:product_type_id>/', views.selection_view, name='selection'),
    path('api/calculator/<slug:product_type_id>/', views.calculator_view, name='calculator'),
    path('api/pricing/quote/', views.quote_view, name='pricing_quote'),
    path('api/pricing/save/', views.save_calculation_view, name='pricing_save'),
]
