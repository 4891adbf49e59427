from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models


# course CRUD lives in the catalog service, this model only carries the fee terms payments read
class Course(models.Model):
    title = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, unique=True)

    course_fee = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal("0"))])
    application_fee = models.DecimalField(
        max_digits=12, decimal_places=2, default=0, validators=[MinValueValidator(Decimal("0"))]
    )
    currency = models.CharField(max_length=3, default=settings.PAYMENT_CURRENCY)

    offers_installments = models.BooleanField(default=False)
    max_installments = models.PositiveSmallIntegerField(default=1)

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["title"]

    def allows_installments(self, count: int) -> bool:
        return self.offers_installments and 1 <= count <= self.max_installments

    def __str__(self):
        return self.title
