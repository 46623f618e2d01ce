"""
In-memory stand-ins for Firestore and Redis, for tests that follow stock
through several writes.

Only the calls made by the service modules are supported.
"""
import copy
import fnmatch
import itertools
from datetime import datetime, timezone


class FakeDocumentSnapshot:
    def __init__(self, reference, data):
        self.reference = reference
        self.id = reference.id
        self._data = copy.deepcopy(data)

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data)


class FakeDocumentReference:
    def __init__(self, db, collection_name, doc_id):
        self._db = db
        self.collection_name = collection_name
        self.id = doc_id

    def _store(self):
        return self._db.collections.setdefault(self.collection_name, {})

    def get(self, transaction=None):
        if transaction is not None:
            transaction.check_read()
        return FakeDocumentSnapshot(self, self._store().get(self.id))

    def set(self, data, merge=False):
        if merge and self.id in self._store():
            self._store()[self.id].update(copy.deepcopy(data))
        else:
            self._store()[self.id] = copy.deepcopy(data)

    def update(self, data):
        if self.id not in self._store():
            raise ValueError(f"No document to update: {self.collection_name}/{self.id}")
        self._store()[self.id].update(copy.deepcopy(data))

    def delete(self):
        self._store().pop(self.id, None)


_OPERATORS = {
    "==": lambda a, b: a == b,
    "!=": lambda a, b: a != b,
    "<": lambda a, b: a < b,
    "<=": lambda a, b: a <= b,
    ">": lambda a, b: a > b,
    ">=": lambda a, b: a >= b,
    "in": lambda a, b: a in b,
}


class FakeQuery:
    def __init__(self, db, collection_name, filters=(), orders=(), limit_count=None):
        self._db = db
        self.collection_name = collection_name
        self._filters = tuple(filters)
        self._orders = tuple(orders)
        self._limit = limit_count

    def where(self, field, op, value):
        return FakeQuery(self._db, self.collection_name, self._filters + ((field, op, value),),
                         self._orders, self._limit)

    def order_by(self, field, direction="ASCENDING"):
        return FakeQuery(self._db, self.collection_name, self._filters,
                         self._orders + ((field, direction),), self._limit)

    def limit(self, count):
        return FakeQuery(self._db, self.collection_name, self._filters, self._orders, count)

    def _matches(self, data):
        for field, op, value in self._filters:
            if field not in data or not _OPERATORS[op](data[field], value):
                return False
        return True

    def stream(self, transaction=None):
        if transaction is not None:
            transaction.check_read()
        store = self._db.collections.get(self.collection_name, {})
        rows = [(doc_id, data) for doc_id, data in store.items() if self._matches(data)]
        for field, direction in reversed(self._orders):
            rows.sort(key=lambda row: (row[1].get(field) is None, row[1].get(field)),
                      reverse=direction == "DESCENDING")
        if self._limit is not None:
            rows = rows[:self._limit]
        return iter([
            FakeDocumentSnapshot(FakeDocumentReference(self._db, self.collection_name, doc_id), data)
            for doc_id, data in rows
        ])

    def get(self, transaction=None):
        return list(self.stream(transaction=transaction))


class FakeCollectionReference(FakeQuery):
    def document(self, doc_id=None):
        if doc_id is None:
            doc_id = f"{self.collection_name}-{next(self._db.id_sequence)}"
        return FakeDocumentReference(self._db, self.collection_name, doc_id)


class FakeTransaction:
    """
    Buffers writes until commit. Reading after a write fails, as it does
    against the real store.
    """

    def __init__(self, db):
        self._db = db
        self._writes = []
        self.committed = False

    def check_read(self):
        if self._writes:
            raise ValueError("Transactions require all reads to be executed before all writes.")

    def set(self, reference, data, merge=False):
        self._writes.append(lambda: reference.set(data, merge=merge))

    def update(self, reference, data):
        self._writes.append(lambda: reference.update(data))

    def delete(self, reference):
        self._writes.append(reference.delete)

    def commit(self):
        for write in self._writes:
            write()
        self.committed = True
        self._db.commits += 1


def fake_transactional(func):
    """Replacement for firestore.transactional: commit only when func returns."""
    def wrapper(transaction, *args, **kwargs):
        result = func(transaction, *args, **kwargs)
        transaction.commit()
        return result
    return wrapper


class FakeFirestore:
    def __init__(self):
        self.collections = {}
        self.id_sequence = itertools.count(1)
        self.commits = 0

    def collection(self, name):
        return FakeCollectionReference(self, name)

    def transaction(self):
        return FakeTransaction(self)

    def add(self, collection_name, doc_id, data):
        self.collections.setdefault(collection_name, {})[doc_id] = copy.deepcopy(data)

    def data(self, collection_name, doc_id):
        return copy.deepcopy(self.collections.get(collection_name, {}).get(doc_id))

    def all(self, collection_name):
        return copy.deepcopy(self.collections.get(collection_name, {}))


class FakePipeline:
    def __init__(self, client):
        self._client = client
        self._calls = []

    def get(self, key):
        self._calls.append(lambda: self._client.get(key))

    def delete(self, *keys):
        self._calls.append(lambda: self._client.delete(*keys))

    def execute(self):
        return [call() for call in self._calls]


class FakeRedis:
    """Dictionary-backed client; TTLs are recorded, not enforced."""

    def __init__(self):
        self.values = {}
        self.ttls = {}

    def get(self, key):
        return self.values.get(key)

    def set(self, key, value, ex=None):
        self.values[key] = value
        self.ttls[key] = ex
        return True

    def delete(self, *keys):
        deleted = 0
        for key in keys:
            if self.values.pop(key, None) is not None:
                deleted += 1
            self.ttls.pop(key, None)
        return deleted

    def scan_iter(self, match="*"):
        return iter([key for key in list(self.values) if fnmatch.fnmatch(key, match)])

    def pipeline(self):
        return FakePipeline(self)


def auth_header(user_id):
    return {"Authorization": f"Bearer {user_id}"}


def add_product(db, product_id, name, price, stock, barcode="", min_stock=0, category=""):
    now = datetime(2025, 1, 1, tzinfo=timezone.utc)
    db.add("products", product_id, {
        "name": name,
        "barcode": barcode,
        "price": price,
        "costPrice": 0,
        "stock": stock,
        "minStock": min_stock,
        "category": category,
        "imageUrl": None,
        "createdAt": now,
        "updatedAt": now,
    })


def add_sale(db, sale_id, items, cashier_id="cashier-1", payment_method="cash", created_at=None):
    """
    Store a sale with its items; items are (item_id, product_id, quantity, price).
    """
    created_at = created_at or datetime.now(timezone.utc)
    db.add("sales", sale_id, {
        "cashierId": cashier_id,
        "total": sum(quantity * price for _, _, quantity, price in items),
        "paymentMethod": payment_method,
        "status": "completed",
        "createdAt": created_at,
        "updatedAt": created_at,
    })
    for item_id, product_id, quantity, price in items:
        db.add("sale_items", item_id, {
            "saleId": sale_id,
            "productId": product_id,
            "quantity": quantity,
            "price": price,
            "subtotal": quantity * price,
        })


def add_expense(db, expense_id, amount, category="other", description="Electricity", created_at=None):
    created_at = created_at or datetime.now(timezone.utc)
    db.add("expenses", expense_id, {
        "description": description,
        "amount": amount,
        "category": category,
        "createdBy": "admin-1",
        "createdAt": created_at,
        "updatedAt": created_at,
    })
