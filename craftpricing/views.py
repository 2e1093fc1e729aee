import io
import json
import logging
from typing import Mapping

from django.http import HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from .catalog import PRODUCT_TYPES, get_product_type
from .domain_models import PricingInputs
from .material_loader import MaterialCsvError, load_materials_from_csv
from .pricing_engine import (
    compute_cost_basis,
    compute_pricing,
    normalize_margin_kind,
    normalize_mode,
    sync_inputs,
)
from .selection import (
    SelectionError,
    material_line_from_record,
    material_lines_from_records,
    remove_material,
    selection_subtotal,
    set_quantity,
    toggle_material,
)
from .services.material_repository import (
    MaterialNotFound,
    MaterialValidationError,
    create_material,
    create_materials,
    delete_material,
    list_materials,
    update_material,
)
from .services.product_repository import (
    ProductNotFound,
    ProductValidationError,
    create_product,
    delete_product,
    get_product,
    list_products,
    update_product,
)
from .services.product_table import export_products_csv, product_table, table_rows
from .snapshot import build_product_record, inputs_from_record
from .state import (
    clear_staged_materials,
    get_staged_materials,
    pop_product_for_edit,
    stage_materials,
    stage_product_for_edit,
)

logger = logging.getLogger(__name__)


class BadPayload(Exception):
    """Raised when a request body cannot be read as calculator input."""


def _ok(data, status: int = 200) -> JsonResponse:
    return JsonResponse({"success": True, "data": data}, status=status)


def _error(message: str, status: int = 400) -> JsonResponse:
    return JsonResponse({"success": False, "error": message}, status=status)


def _json_body(request) -> dict:
    try:
        payload = json.loads(request.body or b"{}")
    except ValueError as exc:
        raise BadPayload("Request body must be valid JSON.") from exc
    if not isinstance(payload, dict):
        raise BadPayload("Request body must be a JSON object.")
    return payload


def _inputs_from_payload(payload: Mapping[str, object]) -> PricingInputs:
    raw_materials = payload.get("materials") or []
    if not isinstance(raw_materials, list) or not all(isinstance(item, Mapping) for item in raw_materials):
        raise BadPayload("materials must be a list of objects.")
    try:
        materials = material_lines_from_records(raw_materials)
    except SelectionError as exc:
        raise BadPayload(str(exc)) from exc
    return PricingInputs(
        materials=materials,
        unit_count=payload.get("quantity", 1),
        labor_charge=payload.get("laborCost", ""),
        additional_charge=payload.get("additionalCost", ""),
        mode=normalize_mode(payload.get("priceMode")),
        selling_price=payload.get("sellingPrice", ""),
        margin_value=payload.get("profitMargin", ""),
        margin_kind=normalize_margin_kind(payload.get("marginType")),
    )


def _inputs_payload(inputs: PricingInputs) -> dict[str, object]:
    return {
        "materials": [line.to_record() for line in inputs.materials],
        "quantity": inputs.unit_count,
        "laborCost": inputs.labor_charge,
        "additionalCost": inputs.additional_charge,
        "priceMode": normalize_mode(inputs.mode).value,
        "sellingPrice": inputs.selling_price,
        "profitMargin": inputs.margin_value,
        "marginType": normalize_margin_kind(inputs.margin_kind).value,
    }


def _product_type_data(product_type) -> dict[str, str]:
    return {
        "id": product_type.id,
        "title": product_type.title,
        "description": product_type.description,
        "image": product_type.image,
    }


@require_GET
def product_types_view(request):
    return _ok([_product_type_data(product_type) for product_type in PRODUCT_TYPES])


@csrf_exempt
@require_http_methods(["GET", "POST"])
def materials_view(request):
    if request.method == "GET":
        return _ok(list_materials())

    try:
        material = create_material(_json_body(request))
    except (BadPayload, MaterialValidationError) as exc:
        logger.warning("Rejected material: %s", exc)
        return _error(str(exc))
    return _ok(material, status=201)


@csrf_exempt
@require_http_methods(["PUT", "DELETE"])
def material_detail_view(request, material_id):
    try:
        if request.method == "DELETE":
            delete_material(material_id)
            return _ok({})
        return _ok(update_material(material_id, _json_body(request)))
    except MaterialNotFound as exc:
        return _error(str(exc), status=404)
    except (BadPayload, MaterialValidationError) as exc:
        logger.warning("Rejected material %s: %s", material_id, exc)
        return _error(str(exc))


@csrf_exempt
@require_POST
def material_import_view(request):
    materials_file = request.FILES.get("materials_file")
    if not materials_file:
        return _error("Please select a materials CSV file to upload.")
    if not materials_file.name.lower().endswith(".csv"):
        return _error("The uploaded file must be a .csv file.")

    try:
        created = create_materials(load_materials_from_csv(materials_file))
    except (MaterialCsvError, MaterialValidationError) as exc:
        logger.warning("Rejected materials upload %s: %s", materials_file.name, exc)
        return _error(str(exc))
    return _ok(created, status=201)


@csrf_exempt
@require_http_methods(["GET", "POST"])
def products_view(request):
    if request.method == "GET":
        return _ok(list_products())

    try:
        product = create_product(_json_body(request))
    except (BadPayload, ProductValidationError) as exc:
        logger.warning("Rejected product: %s", exc)
        return _error(str(exc))
    return _ok(product, status=201)


@csrf_exempt
@require_http_methods(["GET", "PUT", "DELETE"])
def product_detail_view(request, product_id):
    try:
        if request.method == "GET":
            return _ok(get_product(product_id))
        if request.method == "DELETE":
            delete_product(product_id)
            return _ok({})
        return _ok(update_product(product_id, _json_body(request)))
    except ProductNotFound as exc:
        return _error(str(exc), status=404)
    except (BadPayload, ProductValidationError) as exc:
        logger.warning("Rejected product %s: %s", product_id, exc)
        return _error(str(exc))


@csrf_exempt
@require_POST
def product_edit_view(request, product_id):
    """Queue a saved product to be reopened by the calculator."""
    try:
        record = get_product(product_id)
    except ProductNotFound as exc:
        return _error(str(exc), status=404)
    stage_product_for_edit(request.session, record)
    return _ok({"productId": record["productId"], "id": record["id"]})


@require_GET
def product_table_view(request):
    frame = product_table(
        list_products(),
        search=request.GET.get("search", ""),
        sort_by=request.GET.get("sort", "date"),
    )
    return _ok(table_rows(frame))


@require_GET
def product_export_view(request):
    frame = product_table(
        list_products(),
        search=request.GET.get("search", ""),
        sort_by=request.GET.get("sort", "date"),
    )
    buffer = io.StringIO()
    export_products_csv(frame, buffer)
    response = HttpResponse(buffer.getvalue(), content_type="text/csv")
    response["Content-Disposition"] = 'attachment; filename="products.csv"'
    return response


@csrf_exempt
@require_http_methods(["GET", "PUT", "PATCH", "DELETE"])
def selection_view(request, product_type_id):
    """Staged material selection for one product type.

    ``PATCH`` takes ``{"action": "toggle", "material": {...}}``,
    ``{"action": "quantity", "id": ..., "quantity": ...}`` or
    ``{"action": "remove", "id": ...}``.
    """
    if get_product_type(product_type_id) is None:
        return _error("Unknown product type", status=404)

    selection = get_staged_materials(request.session, product_type_id)

    if request.method in ("PUT", "PATCH"):
        try:
            payload = _json_body(request)
            if request.method == "PUT":
                selection = _inputs_from_payload(payload).materials
            else:
                selection = _apply_selection_action(selection, payload)
        except BadPayload as exc:
            logger.warning("Rejected selection change for %s: %s", product_type_id, exc)
            return _error(str(exc))
        if selection:
            stage_materials(request.session, product_type_id, selection)
        else:
            clear_staged_materials(request.session, product_type_id)
    elif request.method == "DELETE":
        clear_staged_materials(request.session, product_type_id)
        selection = []

    return _ok(
        {
            "materials": [line.to_record() for line in selection],
            "subtotal": selection_subtotal(selection),
        }
    )


def _apply_selection_action(selection, payload):
    action = payload.get("action")
    if action == "toggle":
        material = payload.get("material")
        if not isinstance(material, Mapping):
            raise BadPayload("toggle needs a material object.")
        try:
            line = material_line_from_record(material)
        except SelectionError as exc:
            raise BadPayload(str(exc)) from exc
        if not line.id:
            raise BadPayload("Every material needs an id.")
        return toggle_material(selection, line)
    if action == "quantity":
        return set_quantity(selection, str(payload.get("id")), payload.get("quantity"))
    if action == "remove":
        return remove_material(selection, str(payload.get("id")))
    raise BadPayload(f"Unknown selection action: {action!r}")


@require_GET
def calculator_view(request, product_type_id):
    """Starting state for the calculator page.

    A product queued for editing wins over the staged selection and is
    consumed by this call.
    """
    product_type = get_product_type(product_type_id)
    if product_type is None:
        return _error("Unknown product type", status=404)

    record = pop_product_for_edit(request.session)
    if record is not None:
        inputs = inputs_from_record(record)
        data = {
            "editingProductId": record.get("id"),
            "customName": record.get("customName") or record.get("productName"),
            "customDescription": record.get("customDescription") or record.get("productDescription"),
            "productPhoto": record.get("productPhoto") or "",
        }
    else:
        inputs = PricingInputs(materials=get_staged_materials(request.session, product_type_id))
        data = {
            "editingProductId": None,
            "customName": "",
            "customDescription": product_type.description,
            "productPhoto": "",
        }

    data.update(
        {
            "productType": _product_type_data(product_type),
            "inputs": _inputs_payload(inputs),
            "result": compute_pricing(inputs).as_dict(),
        }
    )
    return _ok(data)


@csrf_exempt
@require_POST
def quote_view(request):
    """Price the submitted calculator inputs.

    The opposing price/margin field is synced first, so the returned inputs
    are what the form should display next.
    """
    try:
        inputs = sync_inputs(_inputs_from_payload(_json_body(request)))
    except BadPayload as exc:
        return _error(str(exc))

    return _ok(
        {
            "inputs": _inputs_payload(inputs),
            "costBasis": compute_cost_basis(inputs),
            "result": compute_pricing(inputs).as_dict(),
        }
    )


@csrf_exempt
@require_POST
def save_calculation_view(request):
    """Snapshot the calculator inputs and results into a saved product."""
    try:
        payload = _json_body(request)
        inputs = _inputs_from_payload(payload)
    except BadPayload as exc:
        return _error(str(exc))

    product_type = get_product_type(str(payload.get("productId") or ""))
    if product_type is None:
        return _error("Unknown product type", status=404)
    if not inputs.materials:
        return _error("Please select materials first")

    record = build_product_record(
        product_type,
        inputs,
        compute_pricing(inputs),
        custom_name=str(payload.get("customName") or ""),
        custom_description=str(payload.get("customDescription") or ""),
        product_photo=payload.get("productPhoto") or None,
    )

    editing_id = payload.get("editingProductId")
    try:
        if editing_id:
            return _ok(update_product(editing_id, record))
        saved = create_product(record)
    except ProductNotFound as exc:
        return _error(str(exc), status=404)
    except ProductValidationError as exc:
        logger.warning("Could not save %s: %s", product_type.id, exc)
        return _error(str(exc))

    return _ok(saved, status=201)
