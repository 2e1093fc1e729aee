import datetime as dt
import io
from dataclasses import replace

from django.core.files.uploadedfile import SimpleUploadedFile
from django.template import Context, Template
from django.test import TestCase
from django.urls import reverse

from .catalog import get_product_type, infer_category
from .domain_models import MarginKind, MaterialLine, PricingInputs, PricingMode
from .material_loader import MaterialCsvError, load_materials_from_csv
from .pricing_engine import (
    compute_cost_basis,
    compute_pricing,
    margin_from_price,
    price_from_margin,
    sync_inputs,
    sync_margin,
    sync_selling_price,
    to_number,
)
from .selection import (
    SelectionError,
    filter_materials,
    group_by_category,
    material_line_from_record,
    material_lines_from_records,
    set_quantity,
    selection_subtotal,
    toggle_material,
)
from .services.material_repository import (
    MaterialNotFound,
    MaterialValidationError,
    create_material,
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
from .services.product_table import display_breakdown, export_products_csv, product_table
from .snapshot import build_product_record, inputs_from_record
from .state import get_staged_materials, pop_product_for_edit, stage_materials, stage_product_for_edit


def line(material_id, price, quantity, name=None, category="beads"):
    return MaterialLine(
        id=material_id,
        name=name or material_id,
        unit_price=price,
        quantity=quantity,
        category=category,
    )


class PricingEngineTests(TestCase):
    def setUp(self):
        self.inputs = PricingInputs(
            materials=[line("bead-glass", 10, 2)],
            unit_count=1,
            labor_charge=5,
            additional_charge=0,
            mode=PricingMode.SELLING_PRICE,
            selling_price=50,
        )

    def test_selling_price_mode(self):
        result = compute_pricing(self.inputs)

        self.assertAlmostEqual(result.materials_unit_cost, 20)
        self.assertAlmostEqual(result.total_cost, 25)
        self.assertAlmostEqual(result.final_price, 50)
        self.assertAlmostEqual(result.gross_profit_amount, 25)
        self.assertAlmostEqual(result.net_profit_amount, 30)
        self.assertAlmostEqual(result.gross_profit_percentage, 50)
        self.assertAlmostEqual(result.net_profit_percentage, 60)

    def test_charges_scale_with_unit_count(self):
        result = compute_pricing(replace(self.inputs, unit_count=3))

        self.assertAlmostEqual(result.total_cost, 75)
        self.assertAlmostEqual(result.unit_cost, 25)
        self.assertAlmostEqual(result.unit_final_price, 50 / 3)
        self.assertAlmostEqual(result.net_profit_amount, 50 - 75 + 15)

    def test_percentage_margin_inverts_to_price(self):
        inputs = PricingInputs(
            materials=[line("bead-glass", 80, 1)],
            mode=PricingMode.MARGIN,
            margin_value=20,
            margin_kind=MarginKind.PERCENTAGE,
        )

        self.assertAlmostEqual(compute_pricing(inputs).final_price, 100)

    def test_amount_margin_adds_to_cost(self):
        inputs = PricingInputs(
            materials=[line("bead-glass", 80, 1)],
            mode=PricingMode.MARGIN,
            margin_value="15",
            margin_kind=MarginKind.AMOUNT,
        )

        self.assertAlmostEqual(compute_pricing(inputs).final_price, 95)

    def test_out_of_range_percentage_falls_back_to_cost(self):
        for margin in (100, 150, 0, -5, "", "abc"):
            with self.subTest(margin=margin):
                inputs = PricingInputs(
                    materials=[line("bead-glass", 80, 1)],
                    mode=PricingMode.MARGIN,
                    margin_value=margin,
                )
                result = compute_pricing(inputs)
                self.assertEqual(result.final_price, 80)
                self.assertEqual(result.gross_profit_amount, 0)

    def test_display_price_uses_labor_but_sync_price_does_not(self):
        inputs = PricingInputs(
            materials=[line("bead-glass", 20, 1)],
            labor_charge=30,
            mode=PricingMode.MARGIN,
            margin_value=20,
        )

        self.assertAlmostEqual(compute_pricing(inputs).final_price, 62.5)
        self.assertAlmostEqual(price_from_margin(inputs), 25)

    def test_price_and_margin_are_near_inverses(self):
        inputs = PricingInputs(
            materials=[line("bead-glass", 12.5, 3), line("thread-wax", 0.35, 7)],
            unit_count=2,
            labor_charge=9,
            additional_charge=4.25,
            margin_kind=MarginKind.PERCENTAGE,
        )

        for margin in (5, 20, 33.3, 62.5, 99):
            with self.subTest(margin=margin):
                price = price_from_margin(replace(inputs, margin_value=margin))
                recovered = margin_from_price(replace(inputs, selling_price=price))
                self.assertAlmostEqual(recovered, margin, delta=0.01)

    def test_margin_from_price_needs_price_and_cost(self):
        self.assertIsNone(margin_from_price(replace(self.inputs, selling_price=0)))
        self.assertIsNone(margin_from_price(replace(self.inputs, materials=[])))

    def test_compute_pricing_is_pure(self):
        first = compute_pricing(self.inputs)
        second = compute_pricing(self.inputs)

        self.assertEqual(first, second)
        self.assertEqual(self.inputs.selling_price, 50)

    def test_bad_unit_count_is_treated_as_one(self):
        for unit_count in (0, -3, "abc", None, ""):
            with self.subTest(unit_count=unit_count):
                result = compute_pricing(replace(self.inputs, unit_count=unit_count))
                self.assertAlmostEqual(result.total_cost, 25)
                self.assertAlmostEqual(result.unit_cost, 25)

    def test_empty_materials(self):
        inputs = PricingInputs(labor_charge="5", additional_charge="7")
        result = compute_pricing(inputs)

        self.assertEqual(result.materials_unit_cost, 0)
        self.assertAlmostEqual(result.total_cost, 12)

    def test_missing_selling_price_gives_zero_percentages(self):
        result = compute_pricing(replace(self.inputs, selling_price="not a price"))

        self.assertEqual(result.final_price, 0)
        self.assertAlmostEqual(result.gross_profit_amount, -25)
        self.assertEqual(result.gross_profit_percentage, 0)
        self.assertEqual(result.net_profit_percentage, 0)

    def test_batch_end_to_end(self):
        inputs = PricingInputs(
            materials=[line("bead-pearl", 100, 1), line("finding-clasp", 50, 2)],
            unit_count=2,
            labor_charge=30,
            additional_charge=20,
            mode=PricingMode.SELLING_PRICE,
            selling_price=600,
        )
        result = compute_pricing(inputs)

        self.assertAlmostEqual(result.materials_unit_cost, 200)
        self.assertAlmostEqual(result.total_cost, 500)
        self.assertAlmostEqual(result.unit_cost, 250)
        self.assertAlmostEqual(result.unit_final_price, 300)
        self.assertAlmostEqual(result.gross_profit_amount, 100)
        self.assertAlmostEqual(result.net_profit_amount, 160)
        self.assertAlmostEqual(result.net_profit_percentage, 26.6667, places=3)
        self.assertAlmostEqual(compute_cost_basis(inputs), 440)

    def test_to_number(self):
        self.assertEqual(to_number("12.5"), 12.5)
        self.assertEqual(to_number(" 7 "), 7)
        self.assertEqual(to_number(""), 0)
        self.assertEqual(to_number("nan"), 0)
        self.assertEqual(to_number("inf"), 0)
        self.assertEqual(to_number(None, default=1.0), 1.0)
        self.assertEqual(to_number(True), 0)


class PriceMarginSyncTests(TestCase):
    def setUp(self):
        self.inputs = PricingInputs(
            materials=[line("bead-glass", 20, 1)],
            labor_charge=30,
        )

    def test_margin_change_updates_selling_price(self):
        inputs = replace(self.inputs, mode=PricingMode.MARGIN, margin_value="20", selling_price="")
        synced = sync_selling_price(inputs)

        self.assertEqual(synced.selling_price, 25.0)
        self.assertIs(sync_selling_price(synced), synced)

    def test_small_price_difference_is_left_alone(self):
        inputs = replace(self.inputs, mode=PricingMode.MARGIN, margin_value=20, selling_price=25.005)

        self.assertIs(sync_selling_price(inputs), inputs)

    def test_amount_margin_sync(self):
        inputs = replace(
            self.inputs,
            mode=PricingMode.MARGIN,
            margin_value=7.5,
            margin_kind=MarginKind.AMOUNT,
        )

        self.assertEqual(sync_selling_price(inputs).selling_price, 27.5)

    def test_price_change_updates_margin(self):
        inputs = replace(self.inputs, mode=PricingMode.SELLING_PRICE, selling_price="50")
        synced = sync_margin(inputs)

        self.assertEqual(synced.margin_value, 60.0)
        self.assertIs(sync_margin(synced), synced)
        self.assertEqual(sync_margin(replace(inputs, margin_value="59.995")).margin_value, "59.995")

    def test_sync_only_runs_for_active_mode(self):
        selling = replace(self.inputs, mode=PricingMode.SELLING_PRICE, margin_value=20, selling_price="")
        margin = replace(self.inputs, mode=PricingMode.MARGIN, margin_value="", selling_price=50)

        self.assertIs(sync_selling_price(selling), selling)
        self.assertIs(sync_margin(margin), margin)
        self.assertIs(sync_inputs(margin), margin)

    def test_margin_sync_skips_when_no_cost(self):
        inputs = PricingInputs(labor_charge=30, selling_price=50)

        self.assertIs(sync_margin(inputs), inputs)


class SelectionTests(TestCase):
    def setUp(self):
        self.glass = line("bead-glass", 0.5, 4, name="Glass bead")
        self.thread = line("thread-wax", 2, 1, name="Wax thread", category="threads")

    def test_toggle_adds_with_quantity_one_and_removes(self):
        selection = toggle_material([], self.glass)
        self.assertEqual(len(selection), 1)
        self.assertEqual(selection[0].quantity, 1)

        self.assertEqual(toggle_material(selection, self.glass), [])

    def test_quantity_at_or_below_zero_removes_line(self):
        selection = [self.glass, self.thread]

        for quantity in (0, "-1", ""):
            with self.subTest(quantity=quantity):
                remaining = set_quantity(selection, "bead-glass", quantity)
                self.assertEqual([item.id for item in remaining], ["thread-wax"])

        updated = set_quantity(selection, "bead-glass", "3")
        self.assertEqual(updated[0].quantity, 3)
        self.assertEqual(selection[0].quantity, 4)
        self.assertAlmostEqual(selection_subtotal(updated), 3.5)

    def test_filter_and_group(self):
        materials = [self.glass, self.thread]

        self.assertEqual(filter_materials(materials, "WAX"), [self.thread])
        self.assertEqual(filter_materials(materials, ""), materials)
        self.assertEqual(
            group_by_category(materials),
            {"beads": [self.glass], "threads": [self.thread]},
        )

    def test_line_from_record_infers_category(self):
        material = material_line_from_record({"id": "finding-clasp", "name": "Clasp", "price": "1.2"})

        self.assertEqual(material.category, "findings")
        self.assertEqual(material.unit_price, 1.2)
        self.assertEqual(material.quantity, 1)
        self.assertEqual(material.unit, "per piece")

    def test_lines_at_or_below_zero_are_dropped(self):
        lines = material_lines_from_records(
            [
                {"id": "bead-a", "price": 10, "quantity": -2},
                {"id": "bead-b", "price": 10, "quantity": 0},
                {"id": "bead-c", "price": 10, "quantity": "3"},
                {"id": "bead-d", "price": 10},
            ]
        )

        self.assertEqual([(item.id, item.quantity) for item in lines], [("bead-c", 3), ("bead-d", 1)])
        self.assertAlmostEqual(selection_subtotal(lines), 40)

    def test_rejects_bad_lines(self):
        bad_selections = {
            "negative price": [{"id": "bead-a", "price": -1, "quantity": 1}],
            "missing id": [{"name": "Loose bead", "price": 1}],
            "repeated id": [{"id": "bead-a", "price": 1}, {"id": "bead-a", "price": 2}],
            "text quantity": [{"id": "bead-a", "price": 1, "quantity": "lots"}],
        }
        for label, records in bad_selections.items():
            with self.subTest(label):
                with self.assertRaises(SelectionError):
                    material_lines_from_records(records)


class CatalogTests(TestCase):
    def test_product_types(self):
        self.assertEqual(get_product_type("rings").title, "Rings")
        self.assertIsNone(get_product_type("hats"))

    def test_infer_category(self):
        self.assertEqual(infer_category("accessory-bell"), "accessories")
        self.assertEqual(infer_category("custom-123"), "beads")
        self.assertEqual(infer_category(None), "beads")


class StagingStoreTests(TestCase):
    def test_selection_hand_off(self):
        store = {}
        stage_materials(store, "bracelets", [])
        self.assertEqual(store, {})

        stage_materials(store, "bracelets", [line("bead-glass", 0.5, 4)])
        self.assertIn("materials_bracelets", store)
        self.assertEqual(get_staged_materials(store, "bracelets")[0].quantity, 4)
        self.assertEqual(get_staged_materials(store, "rings"), [])

    def test_product_for_edit_is_read_once(self):
        store = {}
        stage_product_for_edit(store, {"id": 3, "productId": "rings"})

        self.assertEqual(pop_product_for_edit(store)["id"], 3)
        self.assertIsNone(pop_product_for_edit(store))


class SnapshotTests(TestCase):
    def setUp(self):
        self.product_type = get_product_type("necklace")
        self.inputs = PricingInputs(
            materials=[
                line("bead-pearl", 100, 1, name="Pearl"),
                line("finding-clasp", 50, 2, name="Clasp"),
            ],
            unit_count=2,
            labor_charge=30,
            additional_charge=20,
            selling_price=600,
        )

    def test_record_carries_net_profit(self):
        record = build_product_record(
            self.product_type, self.inputs, compute_pricing(self.inputs), custom_name="Pearl drop"
        )

        self.assertEqual(record["productId"], "necklace")
        self.assertEqual(record["customName"], "Pearl drop")
        self.assertEqual(record["customDescription"], self.product_type.description)
        self.assertEqual(record["materialsCount"], 2)
        self.assertEqual(record["materialsList"], "Pearl, Clasp")
        self.assertEqual(record["quantity"], 2)
        self.assertAlmostEqual(record["totalCost"], 500)
        self.assertAlmostEqual(record["unitPrice"], 300)
        self.assertAlmostEqual(record["profitAmount"], 160)
        self.assertAlmostEqual(record["profitMargin"], 26.6667, places=3)
        self.assertIsNone(record["productPhoto"])

    def test_inputs_from_record_reprices_identically(self):
        record = build_product_record(self.product_type, self.inputs, compute_pricing(self.inputs))
        reopened = inputs_from_record(record)

        self.assertEqual(reopened.mode, PricingMode.SELLING_PRICE)
        self.assertEqual(compute_pricing(reopened), compute_pricing(self.inputs))


class MaterialLoaderTests(TestCase):
    def test_load_materials_from_csv_returns_rows(self):
        csv_content = (
            "id,name,price,unit\n"
            "thread-wax,Wax thread,2.5,per meter\n"
            ",Glass bead,0.4,\n"
        )
        materials = load_materials_from_csv(io.StringIO(csv_content))

        self.assertEqual(
            materials,
            [
                {"name": "Wax thread", "price": 2.5, "unit": "per meter", "category": "threads", "image": None},
                {"name": "Glass bead", "price": 0.4, "unit": "per piece", "category": "beads", "image": None},
            ],
        )

    def test_load_materials_from_csv_rejects_bad_files(self):
        bad_files = [
            "name,unit\nGlass bead,per piece\n",
            "name,price\nGlass bead,cheap\n",
            "name,price\nGlass bead,-1\n",
            "name,price\n,1\n",
            "name,price\n",
        ]
        for content in bad_files:
            with self.subTest(content=content):
                with self.assertRaises(MaterialCsvError):
                    load_materials_from_csv(io.StringIO(content))


class ProductTableTests(TestCase):
    def setUp(self):
        self.records = [
            {"id": 1, "customName": "Blue ring", "sellingPrice": 20, "date": "2024-03-01T10:00:00+00:00"},
            {"id": 2, "productName": "Anklet", "sellingPrice": 45, "date": "2024-05-01T10:00:00+00:00"},
            {"id": 3, "customName": "Charm", "totalPrice": 30, "date": "2024-04-01T10:00:00+00:00"},
        ]

    def test_sort_options(self):
        by_date = product_table(self.records, sort_by="date")
        by_price = product_table(self.records, sort_by="price")
        by_name = product_table(self.records, sort_by="name")

        self.assertEqual(list(by_date["id"]), [2, 3, 1])
        self.assertEqual(list(by_price["id"]), [2, 3, 1])
        self.assertEqual(list(by_name["name"]), ["Anklet", "Blue ring", "Charm"])

    def test_search_matches_custom_or_product_name(self):
        table = product_table(self.records, search="RING")

        self.assertEqual(list(table["id"]), [1])
        self.assertEqual(len(product_table([], search="ring")), 0)

    def test_export_csv(self):
        buffer = io.StringIO()
        export_products_csv(product_table(self.records, sort_by="name"), buffer)

        lines = buffer.getvalue().splitlines()
        self.assertTrue(lines[0].startswith("id,productId,name"))
        self.assertIn("Anklet", lines[1])
        self.assertIn("45.00", lines[1])

    def test_display_breakdown(self):
        breakdown = display_breakdown(
            {
                "sellingPrice": 600,
                "quantity": 2,
                "laborCost": 30,
                "additionalCost": 20,
                "materials": [{"price": 100, "quantity": 1}, {"price": 50, "quantity": 2}],
            }
        )

        self.assertAlmostEqual(breakdown["totalMaterialsCost"], 400)
        self.assertAlmostEqual(breakdown["totalCost"], 500)
        self.assertAlmostEqual(breakdown["unitFinalPrice"], 300)
        self.assertAlmostEqual(breakdown["profitMarginAmount"], 160)


def product_record(**overrides):
    record = {
        "productId": "bracelets",
        "productName": "Bracelets",
        "customName": "Summer bracelet",
        "materials": [{"id": "bead-glass", "name": "Glass bead", "price": 10, "quantity": 2}],
        "quantity": 1,
        "laborCost": 5,
        "additionalCost": 0,
        "totalCost": 25,
        "unitCost": 25,
        "sellingPrice": 50,
        "unitPrice": 50,
        "profitMargin": 60,
        "profitAmount": 30,
        "date": "2024-06-01T12:00:00Z",
    }
    record.update(overrides)
    return record


class ProductRepositoryTests(TestCase):
    def test_create_and_list(self):
        older = create_product(product_record(customName="Older", date="2024-01-01T00:00:00Z"))
        newer = create_product(product_record())

        self.assertEqual(newer["materialsCount"], 1)
        self.assertEqual(newer["materialsList"], "Glass bead")
        self.assertEqual(newer["date"], "2024-06-01T12:00:00+00:00")
        self.assertEqual([item["id"] for item in list_products()], [newer["id"], older["id"]])

    def test_update_replaces_whole_record(self):
        created = create_product(product_record(productPhoto="data:image/png;base64,AAAA"))
        updated = update_product(created["id"], product_record(customName="", sellingPrice=60))

        self.assertEqual(updated["id"], created["id"])
        self.assertEqual(updated["customName"], "")
        self.assertEqual(updated["sellingPrice"], 60)
        self.assertIsNone(updated["productPhoto"])
        self.assertEqual(get_product(created["id"])["sellingPrice"], 60)

    def test_missing_ids(self):
        with self.assertRaises(ProductNotFound):
            update_product(999, product_record())
        with self.assertRaises(ProductNotFound):
            delete_product(999)
        with self.assertRaises(ProductNotFound):
            get_product("abc")

    def test_unit_count_and_material_lines_must_be_positive(self):
        bad_records = [
            product_record(quantity=0),
            product_record(quantity=-1),
            product_record(materials=[{"id": "bead-glass", "name": "Glass bead", "price": 10, "quantity": 0}]),
            product_record(materials=[{"id": "bead-glass", "name": "Glass bead", "price": -10, "quantity": 1}]),
        ]
        for record in bad_records:
            with self.subTest(record=record):
                with self.assertRaises(ProductValidationError):
                    create_product(record)

        self.assertEqual(list_products(), [])

    def test_delete(self):
        created = create_product(product_record())
        delete_product(created["id"])

        self.assertEqual(list_products(), [])

    def test_validation_failures(self):
        bad_records = [
            product_record(quantity="lots"),
            product_record(materials="beads"),
            product_record(materials=[{"name": "Glass bead", "price": "free"}]),
            product_record(productId=None),
            product_record(date="yesterday"),
            product_record(quantity=-1),
        ]
        for record in bad_records:
            with self.subTest(record=record):
                with self.assertRaises(ProductValidationError):
                    create_product(record)
        self.assertEqual(list_products(), [])


class MaterialRepositoryTests(TestCase):
    def test_create_update_delete(self):
        created = create_material({"name": "Glass bead", "price": "0.5"})

        self.assertEqual(created["unit"], "per piece")
        self.assertEqual(created["category"], "beads")

        updated = update_material(created["id"], {"price": 0.75, "category": "threads"})
        self.assertEqual(updated["name"], "Glass bead")
        self.assertEqual(updated["price"], 0.75)
        self.assertEqual(updated["category"], "threads")

        delete_material(created["id"])
        self.assertEqual(list_materials(), [])

    def test_validation_and_not_found(self):
        for record in ({"price": 1}, {"name": "Bead"}, {"name": "Bead", "price": -1}, {"name": "Bead", "price": "x"}):
            with self.subTest(record=record):
                with self.assertRaises(MaterialValidationError):
                    create_material(record)

        with self.assertRaises(MaterialNotFound):
            update_material(42, {"price": 1})
        with self.assertRaises(MaterialNotFound):
            delete_material(42)


class ApiTests(TestCase):
    def test_material_endpoints(self):
        response = self.client.post(
            reverse("materials"),
            {"name": "Glass bead", "price": 0.5},
            content_type="application/json",
        )
        self.assertEqual(response.status_code, 201)
        material_id = response.json()["data"]["id"]

        response = self.client.put(
            reverse("material_detail", args=[material_id]),
            {"price": 0.6},
            content_type="application/json",
        )
        self.assertEqual(response.json()["data"]["price"], 0.6)

        response = self.client.get(reverse("materials"))
        self.assertEqual(len(response.json()["data"]), 1)

        response = self.client.delete(reverse("material_detail", args=[material_id]))
        self.assertEqual(response.json(), {"success": True, "data": {}})

        response = self.client.delete(reverse("material_detail", args=[material_id]))
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"success": False, "error": "Material not found"})

    def test_invalid_json_is_rejected(self):
        response = self.client.post(reverse("materials"), "{not json", content_type="application/json")

        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()["success"])

    def test_material_import(self):
        upload = SimpleUploadedFile(
            "materials.csv",
            b"name,price,category\nGlass bead,0.5,beads\nWax thread,2,threads\n",
            content_type="text/csv",
        )
        response = self.client.post(reverse("material_import"), {"materials_file": upload})

        self.assertEqual(response.status_code, 201)
        self.assertEqual(len(list_materials()), 2)

        upload = SimpleUploadedFile("materials.txt", b"name,price\n", content_type="text/plain")
        response = self.client.post(reverse("material_import"), {"materials_file": upload})
        self.assertEqual(response.status_code, 400)

    def test_product_endpoints(self):
        response = self.client.post(reverse("products"), product_record(), content_type="application/json")
        self.assertEqual(response.status_code, 201)
        product_id = response.json()["data"]["id"]

        response = self.client.put(
            reverse("product_detail", args=[product_id]),
            product_record(customName="Renamed"),
            content_type="application/json",
        )
        self.assertEqual(response.json()["data"]["customName"], "Renamed")

        response = self.client.get(reverse("product_detail", args=[999]))
        self.assertEqual(response.status_code, 404)

        with self.assertLogs("craftpricing.views", level="WARNING"):
            response = self.client.put(
                reverse("product_detail", args=[product_id]),
                product_record(sellingPrice="lots"),
                content_type="application/json",
            )
        self.assertEqual(response.status_code, 400)

        response = self.client.delete(reverse("product_detail", args=[product_id]))
        self.assertTrue(response.json()["success"])
        self.assertEqual(self.client.get(reverse("products")).json()["data"], [])

    def test_selection_put_drops_lines_at_or_below_zero(self):
        url = reverse("selection", args=["rings"])
        materials = [
            {"id": "bead-a", "name": "Bead A", "price": 10, "quantity": -2},
            {"id": "bead-b", "name": "Bead B", "price": 10, "quantity": 0},
            {"id": "bead-c", "name": "Bead C", "price": 10, "quantity": 2},
        ]

        data = self.client.put(url, {"materials": materials}, content_type="application/json").json()["data"]
        self.assertEqual([(item["id"], item["quantity"]) for item in data["materials"]], [("bead-c", 2)])
        self.assertAlmostEqual(data["subtotal"], 20)

        data = self.client.put(url, {"materials": materials[:2]}, content_type="application/json").json()["data"]
        self.assertEqual(data["materials"], [])
        self.assertEqual(data["subtotal"], 0)

    def test_selection_rejects_repeated_or_missing_ids(self):
        url = reverse("selection", args=["rings"])
        bead = {"id": "bead-a", "name": "Bead A", "price": 10, "quantity": 1}
        self.client.put(url, {"materials": [bead]}, content_type="application/json")

        for materials in ([bead, dict(bead, quantity=3)], [{"name": "Loose bead", "price": 1}]):
            with self.subTest(materials=materials):
                response = self.client.put(url, {"materials": materials}, content_type="application/json")
                self.assertEqual(response.status_code, 400)
                self.assertFalse(response.json()["success"])

        response = self.client.patch(
            url, {"action": "toggle", "material": {"name": "Loose bead"}}, content_type="application/json"
        )
        self.assertEqual(response.status_code, 400)

        staged = self.client.get(url).json()["data"]["materials"]
        self.assertEqual([item["id"] for item in staged], ["bead-a"])

    def test_quote_ignores_non_positive_lines_and_rejects_negative_prices(self):
        payload = {
            "materials": [
                {"id": "bead-a", "name": "Bead A", "price": 10, "quantity": -3},
                {"id": "bead-b", "name": "Bead B", "price": 10, "quantity": 0},
            ],
            "priceMode": "selling",
            "sellingPrice": 50,
        }
        data = self.client.post(reverse("pricing_quote"), payload, content_type="application/json").json()["data"]

        self.assertEqual(data["inputs"]["materials"], [])
        self.assertEqual(data["result"]["materialsUnitCost"], 0)
        self.assertEqual(data["result"]["totalCost"], 0)

        payload["materials"] = [{"id": "bead-a", "name": "Bead A", "price": -10, "quantity": 1}]
        response = self.client.post(reverse("pricing_quote"), payload, content_type="application/json")
        self.assertEqual(response.status_code, 400)

        payload["productId"] = "rings"
        response = self.client.post(reverse("pricing_save"), payload, content_type="application/json")
        self.assertEqual(response.status_code, 400)

    def test_quote_syncs_price_from_margin(self):
        payload = {
            "materials": [{"id": "bead-glass", "name": "Glass bead", "price": 20, "quantity": 1}],
            "laborCost": 30,
            "priceMode": "margin",
            "marginType": "percentage",
            "profitMargin": "20",
            "sellingPrice": "",
        }
        response = self.client.post(reverse("pricing_quote"), payload, content_type="application/json")
        data = response.json()["data"]

        self.assertEqual(data["inputs"]["sellingPrice"], 25.0)
        self.assertEqual(data["costBasis"], 20)
        self.assertAlmostEqual(data["result"]["finalPrice"], 62.5)
        self.assertAlmostEqual(data["result"]["totalCost"], 50)

    def test_save_calculation_and_edit_hand_off(self):
        payload = {
            "productId": "bracelets",
            "customName": "Summer bracelet",
            "materials": [{"id": "bead-glass", "name": "Glass bead", "price": 10, "quantity": 2}],
            "quantity": 1,
            "laborCost": 5,
            "priceMode": "selling",
            "sellingPrice": 50,
        }
        response = self.client.post(reverse("pricing_save"), payload, content_type="application/json")
        self.assertEqual(response.status_code, 201)
        saved = response.json()["data"]
        self.assertAlmostEqual(saved["totalCost"], 25)
        self.assertAlmostEqual(saved["profitAmount"], 30)
        self.assertAlmostEqual(saved["profitMargin"], 60)

        response = self.client.post(reverse("product_edit", args=[saved["id"]]))
        self.assertEqual(response.status_code, 200)

        calculator = self.client.get(reverse("calculator", args=["bracelets"])).json()["data"]
        self.assertEqual(calculator["editingProductId"], saved["id"])
        self.assertEqual(calculator["customName"], "Summer bracelet")
        self.assertAlmostEqual(calculator["result"]["finalPrice"], 50)

        calculator = self.client.get(reverse("calculator", args=["bracelets"])).json()["data"]
        self.assertIsNone(calculator["editingProductId"])

        payload.update({"editingProductId": saved["id"], "sellingPrice": 60})
        response = self.client.post(reverse("pricing_save"), payload, content_type="application/json")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(list_products()), 1)
        self.assertAlmostEqual(list_products()[0]["sellingPrice"], 60)

    def test_save_requires_materials(self):
        response = self.client.post(
            reverse("pricing_save"),
            {"productId": "rings", "materials": []},
            content_type="application/json",
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Please select materials first")

    def test_selection_is_staged_in_session(self):
        url = reverse("selection", args=["earrings"])
        bead = {"id": "bead-glass", "name": "Glass bead", "price": 0.5}

        self.client.patch(url, {"action": "toggle", "material": bead}, content_type="application/json")
        response = self.client.patch(
            url, {"action": "quantity", "id": "bead-glass", "quantity": 6}, content_type="application/json"
        )
        self.assertAlmostEqual(response.json()["data"]["subtotal"], 3)

        staged = self.client.get(url).json()["data"]["materials"]
        self.assertEqual(staged[0]["quantity"], 6)

        calculator = self.client.get(reverse("calculator", args=["earrings"])).json()["data"]
        self.assertAlmostEqual(calculator["result"]["materialsUnitCost"], 3)

        response = self.client.patch(url, {"action": "remove", "id": "bead-glass"}, content_type="application/json")
        self.assertEqual(response.json()["data"]["materials"], [])

        response = self.client.patch(url, {"action": "shuffle"}, content_type="application/json")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.client.get(reverse("selection", args=["hats"])).status_code, 404)

    def test_table_and_export(self):
        create_product(product_record(customName="Cheap", sellingPrice=10, date="2024-01-01T00:00:00Z"))
        create_product(product_record(customName="Dear", sellingPrice=90, date="2023-01-01T00:00:00Z"))

        rows = self.client.get(reverse("product_table"), {"sort": "price"}).json()["data"]
        self.assertEqual([row["name"] for row in rows], ["Dear", "Cheap"])
        self.assertEqual(rows[1]["date"], dt.datetime(2024, 1, 1, tzinfo=dt.timezone.utc).isoformat())

        response = self.client.get(reverse("product_export"), {"search": "dear"})
        self.assertEqual(response["Content-Type"], "text/csv")
        self.assertEqual(len(response.content.decode().splitlines()), 2)

    def test_product_types(self):
        data = self.client.get(reverse("product_types")).json()["data"]

        self.assertEqual([item["id"] for item in data][:2], ["bracelets", "rings"])


class TemplateFilterTests(TestCase):
    def test_money_and_percent(self):
        template = Template("{% load pricing_extras %}{{ price|money }} {{ margin|percent }}")
        rendered = template.render(Context({"price": 1234.5, "margin": 26.666}))

        self.assertEqual(rendered, "1,234.50 26.7%")
