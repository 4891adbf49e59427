from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("courses", "0001_initial"),
        ("payments", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.RemoveConstraint(
            model_name="installmentplan",
            name="unique_active_plan_per_course",
        ),
        migrations.AddConstraint(
            model_name="installmentplan",
            constraint=models.UniqueConstraint(
                condition=models.Q(("status", "cancelled"), _negated=True),
                fields=("user", "course"),
                name="unique_plan_per_course",
            ),
        ),
    ]
