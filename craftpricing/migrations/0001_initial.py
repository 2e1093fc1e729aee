import django.core.validators
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Material",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("price", models.FloatField(validators=[django.core.validators.MinValueValidator(0)])),
                ("unit", models.CharField(default="per piece", max_length=50)),
                ("category", models.CharField(default="beads", max_length=50)),
                ("image", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
            ],
            options={
                "ordering": ["created_at", "id"],
            },
        ),
        migrations.CreateModel(
            name="Product",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("product_id", models.CharField(max_length=50)),
                ("product_name", models.CharField(blank=True, max_length=200)),
                ("custom_name", models.CharField(blank=True, max_length=200)),
                ("product_description", models.TextField(blank=True)),
                ("custom_description", models.TextField(blank=True)),
                ("product_image", models.CharField(blank=True, max_length=50)),
                ("product_photo", models.TextField(blank=True, null=True)),
                ("materials", models.JSONField(blank=True, default=list)),
                ("materials_count", models.PositiveIntegerField(default=0)),
                ("materials_list", models.TextField(blank=True)),
                ("quantity", models.FloatField(default=1, validators=[django.core.validators.MinValueValidator(0)])),
                ("labor_cost", models.FloatField(default=0)),
                ("additional_cost", models.FloatField(default=0)),
                ("total_cost", models.FloatField(default=0)),
                ("unit_cost", models.FloatField(default=0)),
                ("selling_price", models.FloatField(default=0)),
                ("unit_price", models.FloatField(default=0)),
                ("profit_margin", models.FloatField(default=0)),
                ("profit_amount", models.FloatField(default=0)),
                ("date", models.DateTimeField(default=django.utils.timezone.now)),
            ],
            options={
                "ordering": ["-date", "-id"],
            },
        ),
    ]
