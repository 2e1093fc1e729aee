from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from .catalog import DEFAULT_CATEGORY, DEFAULT_UNIT


class Material(models.Model):
    name = models.CharField(max_length=200)
    price = models.FloatField(validators=[MinValueValidator(0)])
    unit = models.CharField(max_length=50, default=DEFAULT_UNIT)
    category = models.CharField(max_length=50, default=DEFAULT_CATEGORY)
    image = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["created_at", "id"]

    def __str__(self) -> str:
        return self.name


class Product(models.Model):
    """A priced product, stored as a snapshot of its inputs and results."""

    product_id = models.CharField(max_length=50)
    product_name = models.CharField(max_length=200, blank=True)
    custom_name = models.CharField(max_length=200, blank=True)
    product_description = models.TextField(blank=True)
    custom_description = models.TextField(blank=True)
    product_image = models.CharField(max_length=50, blank=True)
    product_photo = models.TextField(blank=True, null=True)
    materials = models.JSONField(default=list, blank=True)
    materials_count = models.PositiveIntegerField(default=0)
    materials_list = models.TextField(blank=True)
    quantity = models.FloatField(default=1, validators=[MinValueValidator(0)])
    labor_cost = models.FloatField(default=0)
    additional_cost = models.FloatField(default=0)
    total_cost = models.FloatField(default=0)
    unit_cost = models.FloatField(default=0)
    selling_price = models.FloatField(default=0)
    unit_price = models.FloatField(default=0)
    profit_margin = models.FloatField(default=0)
    profit_amount = models.FloatField(default=0)
    date = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-date", "-id"]

    def __str__(self) -> str:
        return self.custom_name or self.product_name or self.product_id
