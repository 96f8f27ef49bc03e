"""Query filters for the product list endpoint."""

from django.db.models import Q
from django_filters import rest_framework as filters

from .models import Product


class CharInFilter(filters.BaseInFilter, filters.CharFilter):
    pass


class ProductFilterSet(filters.FilterSet):
    search = filters.CharFilter(method="filter_search")
    categories = CharInFilter(field_name="categories__name", lookup_expr="in", distinct=True)
    is_active = filters.BooleanFilter(field_name="is_active")
    min_price = filters.NumberFilter(field_name="price", lookup_expr="gte")
    max_price = filters.NumberFilter(field_name="price", lookup_expr="lte")

    class Meta:
        model = Product
        fields = ["search", "categories", "is_active", "min_price", "max_price"]

    def filter_search(self, queryset, name, value):
        if not value:
            return queryset
        return queryset.filter(Q(name__icontains=value) | Q(description__icontains=value))
