"""Tests for page hierarchy reconstruction."""

import unittest

from models import Page
from hierarchy import build_forest, compute_stats, count_all, to_client_tree


def make_page(page_id, title, parent_id=None, parent_type='page'):
    if parent_id is None:
        parent_type = 'space'
    return Page(id=page_id, title=title, parent_id=parent_id, parent_type=parent_type)


class TestBuildForest(unittest.TestCase):
    def test_root_with_one_child(self):
        """A root and its child form one tree of depth 2."""
        pages = [
            make_page('1', 'Root'),
            make_page('2', 'Child', parent_id='1'),
        ]

        forest = build_forest(pages)
        stats = compute_stats(forest)

        self.assertEqual(len(forest.roots), 1)
        self.assertEqual(forest.roots[0].id, '1')
        self.assertEqual([c.id for c in forest.roots[0].children], ['2'])
        self.assertEqual(stats.max_depth, 2)
        self.assertEqual(stats.root_count, 1)
        self.assertEqual(stats.total_pages, 2)

    def test_missing_parent_is_promoted_to_root(self):
        pages = [
            make_page('1', 'Root'),
            make_page('2', 'Lost', parent_id='99'),
        ]

        with self.assertLogs('confluence_space_backup.hierarchy.tree_builder', level='WARNING') as logs:
            forest = build_forest(pages)

        self.assertEqual(sorted(r.id for r in forest.roots), ['1', '2'])
        self.assertEqual(forest.orphan_ids, ['2'])
        self.assertTrue(any('99' in line for line in logs.output))

    def test_space_parent_type_wins_over_parent_id(self):
        page = Page(id='1', title='Top', parent_id='space-home', parent_type='space')
        forest = build_forest([page])
        self.assertEqual([r.id for r in forest.roots], ['1'])
        self.assertEqual(forest.orphan_ids, [])

    def test_siblings_sorted_by_title(self):
        pages = [
            make_page('1', 'Root'),
            make_page('2', 'Charlie', parent_id='1'),
            make_page('3', 'Alpha', parent_id='1'),
            make_page('4', 'Bravo', parent_id='1'),
            make_page('5', 'Zulu'),
            make_page('6', 'Mike'),
        ]

        forest = build_forest(pages)

        self.assertEqual([r.title for r in forest.roots], ['Mike', 'Root', 'Zulu'])
        root = next(r for r in forest.roots if r.id == '1')
        self.assertEqual([c.title for c in root.children], ['Alpha', 'Bravo', 'Charlie'])

    def test_sibling_order_ignores_case_and_accents(self):
        pages = [
            make_page('1', 'Zebra'),
            make_page('2', 'apple'),
            make_page('3', 'Éclair'),
            make_page('4', 'banana'),
        ]

        forest = build_forest(pages)

        self.assertEqual([r.title for r in forest.roots], ['apple', 'banana', 'Éclair', 'Zebra'])

    def test_equal_titles_keep_input_order(self):
        pages = [
            make_page('1', 'Root'),
            make_page('5', 'Same', parent_id='1'),
            make_page('3', 'Same', parent_id='1'),
        ]
        forest = build_forest(pages)
        self.assertEqual([c.id for c in forest.roots[0].children], ['5', '3'])

    def test_every_page_appears_once(self):
        pages = [make_page('1', 'Root')]
        for i in range(2, 30):
            pages.append(make_page(str(i), f'Page {i}', parent_id=str(i // 2)))

        forest = build_forest(pages)

        self.assertEqual(sum(count_all(r) for r in forest.roots), forest.total_pages)
        seen = [node.id for root in forest.roots for node in root.get_all_descendants(include_self=True)]
        self.assertEqual(sorted(seen), sorted(p.id for p in pages))

    def test_cycle_members_are_not_reachable(self):
        pages = [
            make_page('1', 'Root'),
            make_page('a', 'A', parent_id='b'),
            make_page('b', 'B', parent_id='a'),
        ]

        forest = build_forest(pages)

        self.assertEqual([r.id for r in forest.roots], ['1'])
        self.assertEqual(forest.total_pages, 3)
        self.assertLess(sum(count_all(r) for r in forest.roots), forest.total_pages)

    def test_empty_input(self):
        forest = build_forest([])
        stats = compute_stats(forest)
        self.assertEqual(forest.roots, [])
        self.assertEqual(stats.max_depth, 0)
        self.assertEqual(stats.pages_by_level, {})


class TestComputeStats(unittest.TestCase):
    def test_pages_by_level(self):
        pages = [
            make_page('1', 'Root'),
            make_page('2', 'A', parent_id='1'),
            make_page('3', 'B', parent_id='1'),
            make_page('4', 'A1', parent_id='2'),
            make_page('5', 'Other root'),
        ]

        stats = compute_stats(build_forest(pages))

        self.assertEqual(stats.root_count, 2)
        self.assertEqual(stats.max_depth, 3)
        self.assertEqual(stats.pages_by_level, {1: 2, 2: 2, 3: 1})
        self.assertEqual(stats.to_dict()['pages_by_level'], {1: 2, 2: 2, 3: 1})

    def test_deep_chain_does_not_recurse(self):
        pages = [make_page('0', 'Root')]
        for i in range(1, 3000):
            pages.append(make_page(str(i), f'P{i}', parent_id=str(i - 1)))

        stats = compute_stats(build_forest(pages))

        self.assertEqual(stats.max_depth, 3000)
        self.assertEqual(stats.total_pages, 3000)


class TestClientTree(unittest.TestCase):
    def test_shape(self):
        pages = [make_page('1', 'Root'), make_page('2', 'Child', parent_id='1')]
        tree = to_client_tree(build_forest(pages))
        self.assertEqual(tree, [
            {'id': '1', 'title': 'Root', 'children': [
                {'id': '2', 'title': 'Child', 'children': []},
            ]},
        ])


if __name__ == '__main__':
    unittest.main()
