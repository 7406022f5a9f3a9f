import pytest
from sqlalchemy import inspect

from inventory_service.application.service import InventoryService
from inventory_service.domain.models import Base


def test_create_returns_confirmation_text(client):
    resp = client.post("/api/products", data={"name": "Widget", "value": "9.99", "quantity": "10", "minQuantity": "2"})
    assert resp.status_code == 201
    assert resp.text == "Product added successfully!"


def test_create_then_list_round_trip(client):
    client.post("/api/products", data={"name": "Widget", "value": "9.99", "quantity": "10", "minQuantity": "2"})

    resp = client.get("/api/products")
    assert resp.status_code == 200
    products = resp.json()
    assert len(products) == 1
    product = products[0]
    assert isinstance(product["id"], int)
    assert product["name"] == "Widget"
    assert product["value"] == 9.99
    assert product["quantity"] == 10
    assert product["minQuantity"] == 2
    assert product["image"] is None


def test_create_trims_name(client, create_product):
    product = create_product(name="  Gadget  ")
    assert product["name"] == "Gadget"


def test_create_reports_every_invalid_field(client):
    resp = client.post("/api/products", data={"name": "  ", "value": "", "quantity": "x", "minQuantity": ""})
    assert resp.status_code == 400
    assert resp.json() == {"errors": [
        "Name is required.",
        "Value is required.",
        "Current quantity must be a whole number.",
        "Minimum quantity is required.",
    ]}
    assert client.get("/api/products").json() == []


def test_create_with_no_fields(client):
    resp = client.post("/api/products")
    assert resp.status_code == 400
    assert len(resp.json()["errors"]) == 4


def test_invalid_create_does_not_store_image(client, upload_dir, image_file):
    resp = client.post("/api/products", data={"name": ""}, files={"image": image_file()})
    assert resp.status_code == 400
    assert list(upload_dir.iterdir()) == []


def test_list_is_ordered_by_name_and_repeatable(client, create_product):
    for name in ["Pliers", "Hammer", "Wrench", "Drill"]:
        create_product(name=name)

    first = client.get("/api/products").json()
    second = client.get("/api/products").json()
    assert [p["name"] for p in first] == ["Drill", "Hammer", "Pliers", "Wrench"]
    assert first == second


def test_create_with_image_stores_and_serves_file(client, create_product, upload_dir, image_file):
    product = create_product(image=image_file("front.PNG", b"png-bytes"))

    assert product["image"].endswith(".png")
    assert (upload_dir / product["image"]).read_bytes() == b"png-bytes"

    served = client.get(f"/uploads/{product['image']}")
    assert served.status_code == 200
    assert served.content == b"png-bytes"


def test_update_overwrites_fields(client, create_product, get_product):
    product = create_product()
    resp = client.put(
        f"/api/products/{product['id']}",
        data={"name": "Widget XL", "value": "19.5", "quantity": "3", "minQuantity": "1"},
    )
    assert resp.status_code == 200
    assert resp.json() == {"message": "Product updated successfully"}

    updated = get_product(product["id"])
    assert updated["name"] == "Widget XL"
    assert updated["value"] == 19.5
    assert updated["quantity"] == 3
    assert updated["minQuantity"] == 1


def test_update_without_file_keeps_image(client, create_product, get_product, image_file, upload_dir):
    product = create_product(image=image_file())
    client.put(
        f"/api/products/{product['id']}",
        data={"name": "Widget", "value": "1", "quantity": "1", "minQuantity": "1"},
    )
    assert get_product(product["id"])["image"] == product["image"]
    assert (upload_dir / product["image"]).exists()


def test_update_with_file_replaces_image(client, create_product, get_product, image_file, upload_dir):
    product = create_product(image=image_file("old.jpg", b"old"))
    resp = client.put(
        f"/api/products/{product['id']}",
        data={"name": "Widget", "value": "1", "quantity": "1", "minQuantity": "1"},
        files={"image": image_file("new.png", b"new")},
    )
    assert resp.status_code == 200

    new_image = get_product(product["id"])["image"]
    assert new_image != product["image"]
    assert new_image.endswith(".png")
    assert (upload_dir / new_image).read_bytes() == b"new"
    assert not (upload_dir / product["image"]).exists()


def test_update_validation_error_leaves_record_untouched(client, create_product, get_product):
    product = create_product()
    resp = client.put(
        f"/api/products/{product['id']}",
        data={"name": "", "value": "abc", "quantity": "1", "minQuantity": "1"},
    )
    assert resp.status_code == 400
    assert resp.json() == {"errors": ["Name is required.", "Value must be a valid number."]}
    assert get_product(product["id"]) == product


def test_update_unknown_product(client, upload_dir, image_file):
    resp = client.put(
        "/api/products/999",
        data={"name": "Ghost", "value": "1", "quantity": "1", "minQuantity": "1"},
        files={"image": image_file()},
    )
    assert resp.status_code == 404
    assert resp.json() == {"error": "Product not found."}
    assert list(upload_dir.iterdir()) == []


def test_non_integer_id_is_rejected(client):
    resp = client.delete("/api/products/abc")
    assert resp.status_code == 400
    assert "errors" in resp.json()


def test_delete_removes_record_and_image(client, create_product, image_file, upload_dir):
    product = create_product(image=image_file())
    keep = create_product(name="Keeper")

    resp = client.delete(f"/api/products/{product['id']}")
    assert resp.status_code == 200
    assert resp.json() == {"message": "Product deleted successfully!"}
    assert [p["id"] for p in client.get("/api/products").json()] == [keep["id"]]
    assert not (upload_dir / product["image"]).exists()


def test_delete_unknown_product(client):
    resp = client.delete("/api/products/42")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Product not found."}


def test_store_failures_are_reported_without_internals(client, app, upload_dir, image_file):
    Base.metadata.drop_all(app.state.database.engine)
    assert not inspect(app.state.database.engine).has_table("products")

    listed = client.get("/api/products")
    assert listed.status_code == 500
    assert listed.json() == {"error": "Error fetching products, try again later!"}

    created = client.post(
        "/api/products",
        data={"name": "Widget", "value": "1", "quantity": "1", "minQuantity": "1"},
        files={"image": image_file()},
    )
    assert created.status_code == 500
    assert created.text == "Error adding product."
    assert list(upload_dir.iterdir()) == []

    moved = client.post("/api/products/1/entrada", json={"quantity": 1})
    assert moved.status_code == 500
    assert moved.json() == {"error": "Error registering stock entry."}


@pytest.mark.parametrize("field,raw,message", [
    ("quantity", "1e30", "Current quantity is too large."),
    ("quantity", "99999999999999999999", "Current quantity is too large."),
    ("minQuantity", "1e30", "Minimum quantity is out of range."),
    ("value", "9.999", "Value must have at most 2 decimal places."),
    ("value", "100000000", "Value must be below 100000000."),
])
def test_create_rejects_numbers_the_columns_cannot_hold(client, upload_dir, image_file, field, raw, message):
    data = {"name": "Widget", "value": "9.99", "quantity": "10", "minQuantity": "2", field: raw}
    resp = client.post("/api/products", data=data, files={"image": image_file()})
    assert resp.status_code == 400
    assert resp.json() == {"errors": [message]}
    assert client.get("/api/products").json() == []
    assert list(upload_dir.iterdir()) == []


def test_create_keeps_two_decimal_value_exact(create_product):
    product = create_product(value="99999999.99")
    assert product["value"] == 99999999.99


@pytest.mark.parametrize("raw", ["1e30", "99999999999999999999"])
def test_update_rejects_oversized_quantity(client, create_product, get_product, upload_dir, image_file, raw):
    product = create_product(quantity="10")
    resp = client.put(
        f"/api/products/{product['id']}",
        data={"name": "Widget", "value": "9.99", "quantity": raw, "minQuantity": "2"},
        files={"image": image_file()},
    )
    assert resp.status_code == 400
    assert resp.json() == {"errors": ["Current quantity is too large."]}
    assert get_product(product["id"]) == product
    assert list(upload_dir.iterdir()) == []


def test_create_accepts_json_body(client):
    resp = client.post("/api/products", json={"name": " Widget ", "value": 9.99, "quantity": 10, "minQuantity": 2})
    assert resp.status_code == 201
    assert resp.text == "Product added successfully!"
    [product] = client.get("/api/products").json()
    assert product["name"] == "Widget"
    assert product["value"] == 9.99
    assert product["quantity"] == 10
    assert product["minQuantity"] == 2
    assert product["image"] is None


def test_create_json_body_is_validated(client):
    resp = client.post("/api/products", json={"name": "Widget", "value": "cheap", "quantity": -1})
    assert resp.status_code == 400
    assert resp.json() == {"errors": [
        "Value must be a valid number.",
        "Current quantity cannot be negative.",
        "Minimum quantity is required.",
    ]}


def test_update_accepts_json_body_and_keeps_image(client, create_product, get_product, image_file):
    product = create_product(image=image_file())
    resp = client.put(
        f"/api/products/{product['id']}",
        json={"name": "Renamed", "value": "5.50", "quantity": "3", "minQuantity": "1"},
    )
    assert resp.status_code == 200
    assert resp.json() == {"message": "Product updated successfully"}
    updated = get_product(product["id"])
    assert updated["name"] == "Renamed"
    assert updated["value"] == 5.5
    assert updated["quantity"] == 3
    assert updated["minQuantity"] == 1
    assert updated["image"] == product["image"]


def test_unexpected_insert_failure_removes_stored_image(database, storage, image_file, monkeypatch):
    name, stream, _ = image_file()
    with database.session() as session:
        def failing_flush(*args, **kwargs):
            raise OverflowError("Python int too large to convert to SQLite INTEGER")

        monkeypatch.setattr(session, "flush", failing_flush)
        service = InventoryService(session, storage)
        with pytest.raises(OverflowError):
            service.create("Widget", "9.99", "10", "2", (name, stream))
    assert list(storage.directory.iterdir()) == []
