import json
import os
import subprocess
import sys
import tempfile
import threading
from pathlib import Path
from unittest import mock

import redis
from django.test import SimpleTestCase

from .exceptions import Conflict, Forbidden, NotFound, Unauthenticated, exception_handler
from .permissions import Actor, CUSTOMER, STAFF, authorize, enforce
from .store import JsonFileStore, MemoryStore, RedisStore


class AccessPolicyTests(SimpleTestCase):
    """authorize() is pure and covers every combination of inputs"""

    def setUp(self):
        self.staff = Actor(id='staff-1', role=STAFF, name='Sam')
        self.customer = Actor(id='cust-1', role=CUSTOMER, name='Ada')

    def test_missing_actor_is_unauthenticated(self):
        decision = authorize(None)
        self.assertFalse(decision)
        self.assertEqual(decision.kind, 'unauthenticated')

        decision = authorize(None, required_role=STAFF, owner_id='cust-1')
        self.assertEqual(decision.kind, 'unauthenticated')

    def test_any_actor_allowed_without_requirements(self):
        self.assertTrue(authorize(self.customer))
        self.assertTrue(authorize(self.staff))

    def test_required_role(self):
        decision = authorize(self.customer, required_role=STAFF)
        self.assertFalse(decision)
        self.assertEqual(decision.kind, 'forbidden')
        self.assertTrue(authorize(self.staff, required_role=STAFF))
        self.assertFalse(authorize(self.staff, required_role=CUSTOMER))

    def test_ownership(self):
        self.assertTrue(authorize(self.customer, owner_id='cust-1'))
        decision = authorize(self.customer, owner_id='cust-2')
        self.assertFalse(decision)
        self.assertEqual(decision.kind, 'forbidden')

    def test_staff_bypasses_ownership(self):
        self.assertTrue(authorize(self.staff, owner_id='cust-2'))

    def test_enforce_raises_matching_error(self):
        with self.assertRaises(Unauthenticated):
            enforce(None)
        with self.assertRaises(Forbidden):
            enforce(self.customer, required_role=STAFF)
        enforce(self.staff, required_role=STAFF)


class MemoryStoreTests(SimpleTestCase):
    def setUp(self):
        self.store = MemoryStore(lock_timeout=0.2)

    def test_empty_collections(self):
        self.assertEqual(self.store.read('orders'), [])
        self.assertEqual(self.store.read('catalog'), {'coffee': [], 'snacks': []})

    def test_unknown_collection(self):
        with self.assertRaises(ValueError):
            self.store.read('inventory')
        with self.assertRaises(ValueError):
            self.store.mutate(['orders', 'inventory'], lambda data: None)

    def test_snapshots_are_private(self):
        self.store.write('orders', [{'id': 'a'}])
        snapshot = self.store.read('orders')
        snapshot.append({'id': 'b'})
        self.assertEqual(self.store.read('orders'), [{'id': 'a'}])

    def test_mutate_writes_all_named_collections(self):
        def move(data):
            data['orders'].append({'id': 'o1'})
            data['payments'].append({'id': 'p1'})
            return 'done'

        self.assertEqual(self.store.mutate(['payments', 'orders'], move), 'done')
        self.assertEqual(self.store.read('orders'), [{'id': 'o1'}])
        self.assertEqual(self.store.read('payments'), [{'id': 'p1'}])

    def test_failed_mutation_writes_nothing(self):
        self.store.write('orders', [{'id': 'a'}])

        def fail(data):
            data['orders'].append({'id': 'b'})
            raise NotFound('Item not found')

        with self.assertRaises(NotFound):
            self.store.mutate(['orders'], fail)
        self.assertEqual(self.store.read('orders'), [{'id': 'a'}])

    def test_lock_wait_is_bounded(self):
        self.store._locks['orders'].acquire()
        try:
            with self.assertRaises(Conflict):
                self.store.update('orders', lambda orders: orders.append({}))
        finally:
            self.store._locks['orders'].release()

    def test_concurrent_updates_are_not_lost(self):
        barrier = threading.Barrier(20)

        def append(n):
            barrier.wait()
            self.store.update('orders', lambda orders: orders.append({'id': n}))

        threads = [threading.Thread(target=append, args=(n,)) for n in range(20)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(sorted(o['id'] for o in self.store.read('orders')), list(range(20)))


class JsonFileStoreTests(SimpleTestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.data_dir = Path(self.tmp.name) / 'data'
        self.store = JsonFileStore(self.data_dir)

    def test_missing_file_reads_as_empty(self):
        self.assertEqual(self.store.read('invoices'), [])

    def test_writes_one_file_per_collection(self):
        self.store.write('invoices', [{'id': 'i1'}])

        path = self.data_dir / 'invoices.json'
        self.assertTrue(path.exists())
        self.assertEqual(json.loads(path.read_text()), [{'id': 'i1'}])
        # No temp files left behind
        self.assertEqual([p.name for p in self.data_dir.iterdir()], ['invoices.json'])

    def test_state_survives_a_new_store(self):
        self.store.update('orders', lambda orders: orders.append({'id': 'o1'}))
        self.assertEqual(JsonFileStore(self.data_dir).read('orders'), [{'id': 'o1'}])

    def test_collections_written_in_listed_order(self):
        store = self.store
        original_dump = store._dump

        def dump_until_orders(name, data):
            if name == 'orders':
                raise OSError('disk full')
            original_dump(name, data)

        def pay(data):
            data['payments'].append({'id': 'p1', 'order_id': 'o1'})
            data['orders'].append({'id': 'o1', 'status': 'paid'})

        with mock.patch.object(store, '_dump', side_effect=dump_until_orders):
            with self.assertRaises(OSError):
                store.mutate(['payments', 'orders'], pay)

        # The payment log lands first; the order is never left paid without it
        self.assertEqual(store.read('payments'), [{'id': 'p1', 'order_id': 'o1'}])
        self.assertEqual(store.read('orders'), [])

    def test_concurrent_mutations_are_not_lost(self):
        barrier = threading.Barrier(10)

        def append(n):
            barrier.wait()
            self.store.mutate(['catalog', 'orders'], lambda data: data['orders'].append({'id': n}))

        threads = [threading.Thread(target=append, args=(n,)) for n in range(10)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(len(self.store.read('orders')), 10)


class RedisStoreTests(SimpleTestCase):
    """Optimistic writes against a mocked Redis client"""

    def setUp(self):
        self.client = mock.MagicMock()
        self.pipe = mock.MagicMock()
        self.client.pipeline.return_value.__enter__.return_value = self.pipe
        self.pipe.get.return_value = json.dumps([{'id': 'o1'}])
        self.store = RedisStore(client=self.client, prefix='test', max_retries=3)

    def test_read_missing_key_is_empty(self):
        self.client.get.return_value = None
        self.assertEqual(self.store.read('orders'), [])
        self.client.get.assert_called_with('test:orders')

    def test_write_stores_json(self):
        self.store.write('payments', [{'id': 'p1'}])
        self.client.set.assert_called_with('test:payments', json.dumps([{'id': 'p1'}]))

    def test_mutate_watches_and_writes(self):
        result = self.store.update('orders', lambda orders: orders.append({'id': 'o2'}) or len(orders))

        self.assertEqual(result, 2)
        self.pipe.watch.assert_called_once_with('test:orders')
        self.pipe.multi.assert_called_once()
        self.pipe.set.assert_called_once_with('test:orders', json.dumps([{'id': 'o1'}, {'id': 'o2'}]))
        self.pipe.execute.assert_called_once()

    def test_mutate_retries_after_watch_error(self):
        self.pipe.execute.side_effect = [redis.WatchError(), None]
        calls = []

        self.store.update('orders', lambda orders: calls.append(len(orders)))

        self.assertEqual(calls, [1, 1])
        self.assertEqual(self.pipe.execute.call_count, 2)

    def test_mutate_gives_up_with_conflict(self):
        self.pipe.execute.side_effect = redis.WatchError()

        with self.assertRaises(Conflict):
            self.store.update('orders', lambda orders: orders.append({}))
        self.assertEqual(self.pipe.execute.call_count, 3)

    def test_failed_func_does_not_write(self):
        def fail(orders):
            raise NotFound('Order not found')

        with self.assertRaises(NotFound):
            self.store.update('orders', fail)
        self.pipe.execute.assert_not_called()


class ExceptionHandlerTests(SimpleTestCase):
    def test_domain_error_body(self):
        response = exception_handler(NotFound('Order not found'), {})

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data, {'error': 'Order not found', 'kind': 'not_found'})

    def test_default_message(self):
        response = exception_handler(Forbidden(), {})

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data['kind'], 'forbidden')

    def test_unhandled_exceptions_pass_through(self):
        self.assertIsNone(exception_handler(KeyError('boom'), {}))


class ImportOrderTests(SimpleTestCase):
    """Project modules import cleanly in a fresh interpreter, whatever comes first"""

    ROOT = Path(__file__).resolve().parent.parent

    def assert_imports(self, *modules):
        code = 'import django; django.setup(); ' + '; '.join(f'import {m}' for m in modules)
        env = dict(os.environ, DJANGO_SETTINGS_MODULE='coffeehouse.settings', COFFEEHOUSE_STORE_BACKEND='memory')
        result = subprocess.run(
            [sys.executable, '-c', code], cwd=self.ROOT, env=env, capture_output=True, text=True
        )
        self.assertEqual(result.returncode, 0, result.stderr)

    def test_exceptions_first(self):
        self.assert_imports('coffeehouse.exceptions', 'rest_framework.views')

    def test_store_first(self):
        self.assert_imports('coffeehouse.store', 'coffeehouse.authentication')

    def test_views_first(self):
        self.assert_imports('rest_framework.views', 'payment.views', 'coffeehouse.urls')
