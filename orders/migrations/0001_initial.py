from django.db import migrations, models

import orders.models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                (
                    "id",
                    models.CharField(
                        default=orders.models._new_order_id,
                        editable=False,
                        max_length=64,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("customer_name", models.CharField(max_length=50)),
                ("phone", models.CharField(max_length=10)),
                ("notes", models.CharField(blank=True, default="", max_length=200)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("new", "New"),
                            ("processing", "Processing"),
                            ("ready", "Ready"),
                            ("collected", "Collected"),
                        ],
                        db_index=True,
                        default="new",
                        max_length=16,
                    ),
                ),
                ("created_at", models.DateTimeField(db_index=True)),
                ("updated_at", models.DateTimeField()),
                ("created_by", models.CharField(max_length=128)),
                ("history", models.JSONField(default=list)),
                ("version", models.IntegerField(default=0)),
            ],
            options={
                "ordering": ["-created_at", "id"],
            },
        ),
    ]
