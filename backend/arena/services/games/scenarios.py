"""Fixed catalog of round scenarios.

Each scenario offers a safe and a risky choice; the risky one always
carries both the higher failure probability and the higher multiplier.
"""

import random
from typing import Dict, List, Optional, Sequence

from .types import Choice, Scenario


SCENARIOS: Sequence[Scenario] = (
    Scenario(
        id=1,
        title='The Sunlit Shallows',
        description=(
            'Your amoeba colony has discovered a sunny patch of water rich with bacteria. '
            'However, a fish occasionally swims through this area looking for food.'
        ),
        safe=Choice('Stay in the shadows - modest growth but safe', 0.05, 1.3),
        risky=Choice('Move to the sunny patch - more food but predator risk', 0.35, 2.2),
        explanation=(
            'Predation is a major factor in population dynamics. Organisms must balance '
            'resource acquisition with predation risk.'
        ),
    ),
    Scenario(
        id=2,
        title='The Drought Begins',
        description=(
            'Water levels are dropping in your pond. You can either stay put and hope for rain, '
            'or migrate to a deeper area which requires energy and crosses exposed territory.'
        ),
        safe=Choice('Stay and conserve energy - wait for rain', 0.25, 1.4),
        risky=Choice('Migrate to deeper water - risky journey but safer destination', 0.4, 2.0),
        explanation=(
            'Climate and environmental changes force organisms to make migration decisions '
            'that affect survival rates.'
        ),
    ),
    Scenario(
        id=3,
        title='Algae Bloom',
        description=(
            'A massive algae bloom has appeared! It provides abundant food but also depletes '
            'oxygen in the water at night.'
        ),
        safe=Choice('Feed cautiously at the edges', 0.1, 1.5),
        risky=Choice('Dive into the bloom center for maximum feeding', 0.45, 2.5),
        explanation=(
            'Algae blooms can be both beneficial (food source) and harmful (oxygen depletion, '
            'toxins). This is called eutrophication.'
        ),
    ),
    Scenario(
        id=4,
        title='Bacterial Invasion',
        description=(
            'Harmful bacteria have entered your area. You can develop resistance (which takes '
            'energy) or try to outrun the infection.'
        ),
        safe=Choice('Invest in resistance - slower growth but protection', 0.15, 1.2),
        risky=Choice('Ignore the threat and focus on reproduction', 0.5, 2.3),
        explanation=(
            'Disease resistance is a trade-off. Energy spent on immunity cannot be used for '
            'reproduction.'
        ),
    ),
    Scenario(
        id=5,
        title='Temperature Spike',
        description=(
            'A heat wave is raising water temperatures. Warmer water speeds up your metabolism '
            'but also stresses your cells.'
        ),
        safe=Choice('Slow down metabolism and wait it out', 0.1, 1.1),
        risky=Choice('Take advantage of faster metabolism for rapid reproduction', 0.35, 2.4),
        explanation=(
            'Temperature affects metabolic rates. Higher temperatures can increase growth but '
            'also increase mortality risk.'
        ),
    ),
    Scenario(
        id=6,
        title='The Flowing Current',
        description=(
            'A strong current is pushing through your area. It brings fresh nutrients but might '
            'scatter your colony.'
        ),
        safe=Choice('Anchor down and stay together', 0.08, 1.3),
        risky=Choice('Ride the current to new territory with more resources', 0.4, 2.1),
        explanation=(
            'Dispersal is a key survival strategy but carries risks. Staying together provides '
            'safety in numbers.'
        ),
    ),
    Scenario(
        id=7,
        title='Chemical Runoff',
        description=(
            'Agricultural runoff has entered the pond. It contains fertilizers (nutrients) but '
            'also pesticides (toxins).'
        ),
        safe=Choice('Retreat to cleaner water with less food', 0.12, 1.2),
        risky=Choice('Stay and feast on the nutrient-rich but toxic water', 0.55, 2.8),
        explanation=(
            'Pollution creates trade-offs between resource availability and toxicity. This '
            'affects many aquatic populations.'
        ),
    ),
    Scenario(
        id=8,
        title='Competitor Colony',
        description=(
            'Another amoeba species has moved into your territory. They compete for the same '
            'food sources.'
        ),
        safe=Choice('Share territory peacefully - reduced resources but stable', 0.1, 1.3),
        risky=Choice('Compete aggressively for dominance', 0.45, 2.2),
        explanation='Interspecific competition is a major factor in population dynamics and evolution.',
    ),
    Scenario(
        id=9,
        title='Symbiotic Opportunity',
        description=(
            'Beneficial bacteria offer a symbiotic relationship. They provide nutrients but take '
            'up space in your cells.'
        ),
        safe=Choice('Decline the partnership - maintain independence', 0.08, 1.2),
        risky=Choice('Accept the symbiosis - potential for great benefits or harm', 0.3, 2.0),
        explanation=(
            'Symbiosis can be mutualistic, parasitic, or commensal. Mitochondria originated from '
            'ancient symbiosis!'
        ),
    ),
    Scenario(
        id=10,
        title='Seasonal Change',
        description=(
            'Autumn is approaching. You can either form protective cysts now or continue growing '
            'until the last moment.'
        ),
        safe=Choice('Form cysts early - guaranteed survival through winter', 0.05, 1.0),
        risky=Choice('Keep growing until conditions worsen', 0.4, 1.9),
        explanation=(
            'Many organisms form dormant stages to survive harsh conditions. Timing this '
            'transition is critical.'
        ),
    ),
    Scenario(
        id=11,
        title='Oxygen Levels Dropping',
        description=(
            'Decomposing matter is consuming oxygen in the water. You can move to the surface or '
            'adapt to low oxygen.'
        ),
        safe=Choice('Move to oxygen-rich surface waters', 0.15, 1.4),
        risky=Choice('Stay deep and adapt to low oxygen conditions', 0.35, 2.1),
        explanation=(
            'Dissolved oxygen is crucial for aquatic life. Many organisms have adaptations for '
            'low-oxygen environments.'
        ),
    ),
    Scenario(
        id=12,
        title='Mutation Event',
        description=(
            'UV radiation has caused mutations in your colony. Most mutations are harmful, but '
            'some might be beneficial.'
        ),
        safe=Choice('Eliminate mutants to maintain genetic stability', 0.1, 1.2),
        risky=Choice('Allow mutations - chance of beneficial adaptations', 0.4, 2.3),
        explanation=(
            'Mutations are the raw material for evolution. While most are neutral or harmful, '
            'some provide advantages.'
        ),
    ),
    Scenario(
        id=13,
        title='New Food Source',
        description=(
            'A dead insect has fallen into the water, creating a feast. However, many organisms '
            'are competing for it.'
        ),
        safe=Choice('Wait for scraps after larger organisms finish', 0.08, 1.4),
        risky=Choice('Rush in for the best nutrients despite competition', 0.38, 2.4),
        explanation=(
            'Detritus (dead organic matter) is a major energy source in aquatic ecosystems. '
            'Competition for it can be fierce.'
        ),
    ),
    Scenario(
        id=14,
        title='pH Shift',
        description=(
            "Acid rain has lowered the water's pH. You can either tolerate the stress or seek "
            'neutral waters.'
        ),
        safe=Choice('Migrate to buffered zones near rocks', 0.12, 1.3),
        risky=Choice('Adapt to acidic conditions - potential competitive advantage', 0.42, 2.2),
        explanation=(
            'pH affects protein function and metabolism. Acid rain from pollution has devastated '
            'many aquatic ecosystems.'
        ),
    ),
    Scenario(
        id=15,
        title='Final Challenge: The Perfect Storm',
        description=(
            'Multiple stressors combine: temperature rise, predators active, and nutrients '
            'scarce. This is the ultimate test!'
        ),
        safe=Choice('Hunker down in a protected microhabitat', 0.2, 1.5),
        risky=Choice('Take bold action to find the best remaining habitat', 0.5, 3.0),
        explanation=(
            'In nature, organisms often face multiple simultaneous stressors. Surviving requires '
            'balancing many trade-offs.'
        ),
    ),
)


class ScenarioCatalog:
    def __init__(self, scenarios: Sequence[Scenario] = SCENARIOS):
        self._scenarios: List[Scenario] = list(scenarios)
        self._by_id: Dict[int, Scenario] = {s.id: s for s in self._scenarios}

    def __len__(self):
        return len(self._scenarios)

    def __iter__(self):
        return iter(self._scenarios)

    def ids(self) -> List[int]:
        return [s.id for s in self._scenarios]

    def by_id(self, scenario_id: int) -> Optional[Scenario]:
        return self._by_id.get(scenario_id)

    def shuffled_ids(self, count: int, rng: random.Random = None) -> List[int]:
        """Return ``count`` ids drawn from uniform shuffles of the catalog.

        A single shuffle is truncated when the catalog is large enough;
        otherwise further independent shuffles are appended.
        """
        rng = rng or random.Random()
        if not self._scenarios:
            return []
        order: List[int] = []
        while len(order) < count:
            ids = self.ids()
            rng.shuffle(ids)
            order.extend(ids)
        return order[:count]
