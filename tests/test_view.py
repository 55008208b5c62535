import unittest

from tests.fakes import make_item

from chaos_sync.sync.view import MessageView


class MessageViewTests(unittest.TestCase):
    def setUp(self) -> None:
        self.view = MessageView()
        self.view.replace_all([make_item(i) for i in (10, 20, 30)])

    def test_insert_keeps_chronological_order(self) -> None:
        self.assertTrue(self.view.insert(make_item(25)))
        self.assertTrue(self.view.insert(make_item(40)))
        self.assertTrue(self.view.insert(make_item(5)))
        self.assertEqual(self.view.ids, [5, 10, 20, 25, 30, 40])

    def test_duplicate_insert_is_rejected(self) -> None:
        self.assertFalse(self.view.insert(make_item(20, content="again")))
        self.assertEqual(self.view.get(20).content, "message 20")
        self.assertEqual(len(self.view), 3)

    def test_prepend_skips_known_ids(self) -> None:
        added = self.view.prepend([make_item(1), make_item(2), make_item(10)])
        self.assertEqual([m.id for m in added], [1, 2])
        self.assertEqual(self.view.ids, [1, 2, 10, 20, 30])
        self.assertEqual(self.view.oldest.id, 1)

    def test_update_replaces_only_that_item(self) -> None:
        self.assertTrue(self.view.update(make_item(20, pinned=True)))
        self.assertTrue(self.view.get(20).pinned)
        self.assertFalse(self.view.get(10).pinned)
        self.assertEqual(self.view.ids, [10, 20, 30])
        self.assertFalse(self.view.update(make_item(99)))

    def test_updated_item_is_the_one_removed(self) -> None:
        self.view.prepend([make_item(1)])
        self.view.insert(make_item(25))
        edited = make_item(20, content="edited")
        self.assertTrue(self.view.update(edited))

        self.assertIs(self.view.remove(20), edited)
        self.assertEqual(self.view.ids, [1, 10, 25, 30])
        self.assertIsNone(self.view.remove(20))

    def test_remove_by_id_of_any_type(self) -> None:
        self.assertEqual(self.view.remove("20").id, 20)
        self.assertIsNone(self.view.remove(20))
        self.assertNotIn(20, self.view)
        self.assertEqual(self.view.ids, [10, 30])


if __name__ == "__main__":
    unittest.main()
