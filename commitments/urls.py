from django.urls import path
from .views import (
    ActiveCommitmentBulkView,
    ActiveCommitmentView,
    CommitmentDetailView,
    CommitmentListView,
    CustomerDetailView,
    CustomerListView,
    PurchaseDetailView,
    PurchaseListView,
)

urlpatterns = [
    path("commitments/", CommitmentListView.as_view(), name="commitment-list"),
    path("commitments/<uuid:commitment_id>/", CommitmentDetailView.as_view(), name="commitment-detail"),
    path(
        "commitments/<uuid:commitment_id>/purchases/",
        PurchaseListView.as_view(),
        name="purchase-list",
    ),
    path(
        "commitments/<uuid:commitment_id>/purchases/<uuid:purchase_id>/",
        PurchaseDetailView.as_view(),
        name="purchase-detail",
    ),
    path("customers/", CustomerListView.as_view(), name="customer-list"),
    path(
        "customers/active-commitments/",
        ActiveCommitmentBulkView.as_view(),
        name="active-commitment-bulk",
    ),
    path("customers/<int:customer_id>/", CustomerDetailView.as_view(), name="customer-detail"),
    path(
        "customers/<int:customer_id>/active-commitment/",
        ActiveCommitmentView.as_view(),
        name="active-commitment",
    ),
]
