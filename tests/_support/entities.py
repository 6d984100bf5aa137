"""Sample entity types shared by the test-suite.

::

    Customer ──< Order ──< Item
        │
        └── Profile (has_one)
"""

from __future__ import annotations

from tessera.model import Entity, Property, PropertyType, belongs_to, has_many, has_one

SCHEMA = """
CREATE TABLE customers (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    email TEXT
);
CREATE TABLE profiles (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    customer_id INTEGER REFERENCES customers(id),
    bio TEXT
);
CREATE TABLE orders (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    customer_id INTEGER REFERENCES customers(id),
    status TEXT,
    total REAL,
    tags TEXT
);
CREATE TABLE items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    order_id INTEGER NOT NULL REFERENCES orders(id),
    sku TEXT,
    quantity INTEGER
);
"""

SEED = """
INSERT INTO customers (id, name, email) VALUES
    (1, 'Ada', 'ada@example.com'),
    (2, 'Brian', 'brian@example.com'),
    (3, 'Cleo', 'cleo@example.com');
INSERT INTO profiles (id, customer_id, bio) VALUES
    (1, 1, 'Mathematician');
INSERT INTO orders (id, customer_id, status, total, tags) VALUES
    (1, 1, 'open', 30.0, '["rush"]'),
    (2, 1, 'closed', 12.5, '[]'),
    (3, 2, 'open', 100.0, NULL),
    (4, NULL, 'open', 5.0, NULL);
INSERT INTO items (id, order_id, sku, quantity) VALUES
    (1, 1, 'A-1', 1),
    (2, 1, 'B-2', 2),
    (3, 3, 'C-3', 5);
"""


class Customer(Entity):
    properties = {
        "id": Property(PropertyType.INTEGER),
        "name": Property(PropertyType.STRING, rules="required|string:1:64"),
        "email": Property(PropertyType.STRING, rules="email"),
        "orders": has_many("Order"),
        "profile": has_one("Profile"),
    }


class Profile(Entity):
    properties = {
        "id": Property(PropertyType.INTEGER),
        "customer_id": Property(PropertyType.INTEGER),
        "bio": Property(PropertyType.STRING),
        "customer": belongs_to("Customer"),
    }


class Order(Entity):
    properties = {
        "id": Property(PropertyType.INTEGER),
        "customer_id": Property(PropertyType.INTEGER),
        "status": Property(PropertyType.STRING, rules="enum:open,closed"),
        "total": Property(PropertyType.FLOAT),
        "tags": Property(PropertyType.ARRAY),
        "customer": belongs_to("Customer"),
        "items": has_many("Item"),
    }


class Item(Entity):
    properties = {
        "id": Property(PropertyType.INTEGER),
        "order_id": Property(PropertyType.INTEGER),
        "sku": Property(PropertyType.STRING),
        "quantity": Property(PropertyType.INTEGER),
        "order": belongs_to("Order"),
    }


ALL_TYPES = (Customer, Profile, Order, Item)
