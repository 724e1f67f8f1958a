# sales/views/settle.py

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from sales.serializers import SaleItemSerializer, SaleSerializer, SettleInputSerializer
from sales.services.settlement import settle_sale


def _first_error(errors) -> str:
    # nested serializer errors: dict -> list -> dict ...
    while isinstance(errors, (dict, list)) and errors:
        if isinstance(errors, dict):
            key, errors = next(iter(errors.items()))
            if isinstance(errors, list) and errors and not isinstance(errors[0], (dict, list)):
                return f"{key}: {errors[0]}"
        else:
            errors = next((e for e in errors if e), errors[0])
    return str(errors) if errors else "Invalid request"


class SettleSaleView(APIView):
    """
    POS SETTLEMENT ENDPOINT

    201: {success: true, sale, saleItems, batchUpdates?, stockUpdateErrors?}
    400: {success: false, error}

    Stock-side problems (shortfall, missing ledger row, failed batch update)
    still answer 201; callers must read stockUpdateErrors.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        request=SettleInputSerializer,
        responses={
            201: OpenApiResponse(description="Sale settled (possibly with stockUpdateErrors)"),
            400: OpenApiResponse(description="Validation or persistence failure"),
        },
        description="Settle a general (walk-in/online) or dealer cart into a sale.",
    )
    def post(self, request):
        serializer = SettleInputSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {
                    "success": False,
                    "error": _first_error(serializer.errors),
                    "errors": serializer.errors,
                },
                status=status.HTTP_400_BAD_REQUEST,
            )

        outcome = settle_sale(serializer.to_cart(), user=request.user)

        payload = outcome.as_payload(
            serialize_sale=lambda sale: SaleSerializer(sale).data,
            serialize_items=lambda items: SaleItemSerializer(items, many=True).data,
        )

        if not outcome.success:
            return Response(payload, status=status.HTTP_400_BAD_REQUEST)
        return Response(payload, status=status.HTTP_201_CREATED)
