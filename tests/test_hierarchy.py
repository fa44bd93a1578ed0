"""Tests for building and flattening the subject tree."""

from sectionorder.hierarchy import (
    Item,
    TreeNode,
    assign_sequential_order,
    assign_sibling_order,
    build_tree,
    flatten,
    flatten_items,
    order_map,
)


def test_build_tree_groups_children_under_parents(subjects):
    tree = build_tree(subjects)

    assert [node.item.id for node in tree] == ["math", "english", "science"]
    assert [child.id for child in tree[0].children] == ["algebra", "geometry"]
    assert tree[1].children == []


def test_build_tree_sorts_by_order_not_input_position():
    items = [
        Item("b", None, 2),
        Item("b2", "b", 9),
        Item("b1", "b", 3),
        Item("a", None, 1),
    ]

    tree = build_tree(items)

    assert [node.item.id for node in tree] == ["a", "b"]
    assert [child.id for child in tree[1].children] == ["b1", "b2"]


def test_orphaned_child_is_kept_as_root():
    items = [Item("a", None, 1), Item("lost", "gone", 2)]

    tree = build_tree(items)

    assert [node.item.id for node in tree] == ["a", "lost"]


def test_flatten_is_depth_first():
    roots = [
        TreeNode(Item("a", None, 1), [Item("a1", "a", 2), Item("a2", "a", 3)]),
        TreeNode(Item("b", None, 4)),
    ]

    assert [item.id for item in flatten(roots)] == ["a", "a1", "a2", "b"]


def test_flatten_items_matches_tree_walk(subjects):
    shuffled = list(reversed(subjects))

    assert [item.id for item in flatten_items(shuffled)] == [
        "math", "algebra", "geometry", "english", "science",
    ]


def test_assign_sequential_order_is_global_and_one_based():
    items = [Item("a", None, 7), Item("a1", "a", 3), Item("b", None, 1)]

    renumbered = assign_sequential_order(items)

    assert [(i.id, i.order) for i in renumbered] == [("a", 1), ("a1", 2), ("b", 3)]


def test_assign_sequential_order_is_idempotent(subjects):
    once = assign_sequential_order(list(reversed(subjects)))
    twice = assign_sequential_order(once)

    assert twice == once


def test_assign_sequential_order_does_not_mutate_input():
    items = [Item("a", None, 5)]

    assign_sequential_order(items)

    assert items[0].order == 5


def test_assign_sibling_order_restarts_per_group(subjects):
    renumbered = assign_sibling_order(subjects)

    assert order_map(renumbered) == {
        "math": 1,
        "algebra": 1,
        "geometry": 2,
        "english": 2,
        "science": 3,
    }
