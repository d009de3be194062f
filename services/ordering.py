"""
Ordering Service

Steps and ingredient amounts carry a `number`, images an `index`, giving
their display order within the owner. Numbers stay contiguous from 0.
"""

from operator import attrgetter


def ordered(items, key='number'):
    """Return items sorted by their ordering attribute."""
    return sorted(items, key=attrgetter(key))


def renumber(items, key='number'):
    """Renumber already ordered items 0..n-1, touching only those that change."""
    for position, item in enumerate(items):
        if getattr(item, key) != position:
            setattr(item, key, position)
    return items


def move_item(items, source_index, destination_index, key='number'):
    """
    Move the item at `source_index` (in display order) to `destination_index`,
    shifting every displaced item by one.
    """
    sequence = ordered(items, key)
    if not 0 <= source_index < len(sequence) or not 0 <= destination_index < len(sequence):
        raise IndexError(f"Cannot move {source_index} -> {destination_index} in {len(sequence)} items")
    item = sequence.pop(source_index)
    sequence.insert(destination_index, item)
    return renumber(sequence, key)


def move_step(recipe, source_index, destination_index):
    return move_item(recipe.steps, source_index, destination_index)


def move_ingredient_amount(recipe, source_index, destination_index):
    return move_item(recipe.ingredient_amounts, source_index, destination_index)


def move_image(owner, source_index, destination_index):
    return move_item(owner.images, source_index, destination_index, key='index')
