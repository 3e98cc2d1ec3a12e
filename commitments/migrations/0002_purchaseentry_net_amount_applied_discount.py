from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("commitments", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="purchaseentry",
            name="net_amount",
            field=models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True),
        ),
        migrations.AddField(
            model_name="purchaseentry",
            name="applied_discount",
            field=models.PositiveSmallIntegerField(blank=True, null=True),
        ),
    ]
