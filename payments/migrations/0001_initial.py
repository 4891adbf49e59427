import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("courses", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="InstallmentPlan",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("total_course_fee", models.DecimalField(decimal_places=2, max_digits=12)),
                ("application_fee_amount", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("application_fee_paid", models.BooleanField(default=False)),
                ("application_fee_reference", models.CharField(blank=True, default="", max_length=100)),
                ("total_installments", models.PositiveSmallIntegerField()),
                ("installment_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("paid_installments", models.PositiveSmallIntegerField(default=0)),
                ("remaining_balance", models.DecimalField(decimal_places=2, max_digits=12)),
                ("next_due_date", models.DateField(blank=True, null=True)),
                ("payment_plan", models.CharField(choices=[("weekly", "Weekly"), ("monthly", "Monthly"), ("quarterly", "Quarterly")], default="monthly", max_length=20)),
                ("status", models.CharField(choices=[("active", "Active"), ("completed", "Completed"), ("defaulted", "Defaulted"), ("cancelled", "Cancelled")], db_index=True, default="active", max_length=20)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("course", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="installment_plans", to="courses.course")),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="installment_plans", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status", "next_due_date"], name="payments_in_status_6b0e1c_idx"),
                    models.Index(fields=["payment_plan", "status"], name="payments_in_payment_3f2a9d_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(condition=models.Q(("status", "active")), fields=("user", "course"), name="unique_active_plan_per_course"),
                    models.CheckConstraint(condition=models.Q(("remaining_balance__gte", 0)), name="plan_balance_not_negative"),
                    models.CheckConstraint(condition=models.Q(("paid_installments__lte", models.F("total_installments"))), name="plan_paid_within_total"),
                ],
            },
        ),
        migrations.CreateModel(
            name="PaymentRecord",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("reference", models.CharField(db_index=True, max_length=100, unique=True)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("currency", models.CharField(default="NGN", max_length=3)),
                ("payment_type", models.CharField(choices=[("application_fee", "Application fee"), ("course_fee", "Course fee"), ("installment", "Installment")], max_length=20)),
                ("status", models.CharField(choices=[("pending", "Pending"), ("success", "Success"), ("failed", "Failed"), ("cancelled", "Cancelled")], db_index=True, default="pending", max_length=20)),
                ("payment_method", models.CharField(blank=True, default="", max_length=50)),
                ("installment_number", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("total_installments", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("gateway", models.CharField(default="paystack", max_length=30)),
                ("authorization_url", models.URLField(blank=True)),
                ("gateway_response", models.JSONField(blank=True, null=True)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("course", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="payments", to="courses.course")),
                ("installment_plan", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="payments", to="payments.installmentplan")),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="payments", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["payment_type", "status"], name="payments_pa_payment_8c1d4e_idx"),
                    models.Index(fields=["user", "course"], name="payments_pa_user_id_5a7b2f_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="PaymentEvent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("reference", models.CharField(db_index=True, max_length=100)),
                ("gateway", models.CharField(max_length=30)),
                ("outcome", models.CharField(choices=[("applied", "Applied"), ("replayed", "Replayed"), ("ignored", "Ignored"), ("rejected", "Rejected")], max_length=20)),
                ("error_code", models.CharField(blank=True, default="", max_length=50)),
                ("old_status", models.CharField(blank=True, default="", max_length=20)),
                ("new_status", models.CharField(blank=True, default="", max_length=20)),
                ("payload", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("payment", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="events", to="payments.paymentrecord")),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
    ]
