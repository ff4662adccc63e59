"""
Craft Resolver.

Consumes a recipe's ingredients and grants one unit of the crafted item.
"""

from typing import Optional
import logging

from nightwatch.data_models import GameState
from nightwatch.ruleset import Ruleset

logger = logging.getLogger(__name__)


class CraftResolver:
    """Ingredient consumption plus item grant."""

    def __init__(self, ruleset: Ruleset):
        self.ruleset = ruleset

    def craft(self, item_id: str, state: GameState, result_ref: Optional[str] = None) -> bool:
        """
        Craft one unit of an item.

        Ingredients are subtracted without re-checking sufficiency; the
        action that offers the craft is expected to gate on hasItems. A
        shortfall is still reported so a mis-gated action shows up in logs.

        Args:
            item_id: Item to craft
            state: Game state to mutate
            result_ref: Message reference queued on success

        Returns:
            True if the item was crafted
        """
        item = self.ruleset.get_item(item_id)
        if item is None or item.recipe is None:
            logger.error(f"Attempted to craft an item with no recipe: {item_id}")
            return False

        player = state.player
        for ingredient in item.recipe:
            available = player.remove_item(ingredient.item_id, ingredient.quantity)
            if available < ingredient.quantity:
                logger.warning(
                    f"Crafting {item_id}: needed {ingredient.quantity} {ingredient.item_id}, "
                    f"had {available}"
                )

        player.add_item(item_id, 1)
        logger.debug(f"Crafted {item_id}; inventory now {player.inventory}")

        if result_ref:
            state.status.queue(result_ref, {})
        return True
