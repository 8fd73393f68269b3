"""Economy state and the per-tick update.

State is an explicit object passed into the tick logic; nothing is global.
"""

import logging
from dataclasses import dataclass, field

from src.config.settings import Settings, get_settings
from src.economy.industry import GOODS, LABORS, Good, Labor, industry_for
from src.engine.gauss_newton import GaussNewtonSolver, StepResult
from src.engine.matrix import Matrix, Vector
from src.engine.residual import SQRT2, LinearResidualModel

logger = logging.getLogger(__name__)

# Guards divisions by empty supply, demand or production volume.
EPSILON = 0.00001

# Food consumed per head per tick.
FOOD_PER_CAPITA = 0.5

# Productivity floor used when building the allocation system, so idle
# industries still get a finite coefficient.
MIN_PRODUCTIVITY = 0.1


@dataclass(frozen=True)
class TickReport:
    """Copy of the economy's observable state after a tick."""

    tick: int
    pop: float
    laborers: dict[Labor, float]
    available: dict[Good, float]
    labor_value: dict[Good, float]
    price: dict[Good, float]
    demand: dict[Good, float]
    productivity: dict[Labor, tuple[float, Good | None]]
    output: dict[Good, float]
    solver_steps: list[StepResult]

    @property
    def idle_pct(self) -> float:
        """Share of the population not allocated to any industry, in %."""
        return 100.0 * (self.pop - sum(self.laborers.values())) / self.pop


@dataclass
class Economy:
    """Mutable economy state advanced by :meth:`tick`.

    ``available[g]`` is supply/demand for good g on the upcoming tick
    (>= 1 oversupplied, < 1 undersupplied). ``productivity[l]`` is the
    fraction of labor l's demand for its scarcest input that was met, with
    that input. Labor values are hours per unit, propagated forward through
    the supply chain.
    """

    pop: float
    laborers: dict[Labor, float]
    overproduction_target: float = 1.01
    min_workforce_alloc: float = 0.01
    steps_per_tick: int = 1
    jacobian_scale: float = SQRT2
    solver: GaussNewtonSolver = field(default_factory=GaussNewtonSolver, repr=False)

    productivity: dict[Labor, tuple[float, Good | None]] = field(default_factory=dict)
    available: dict[Good, float] = field(default_factory=dict)
    labor_value: dict[Good, float] = field(default_factory=dict)
    price: dict[Good, float] = field(default_factory=dict)
    output: dict[Good, float] = field(default_factory=dict)
    demand: dict[Good, float] = field(default_factory=dict)
    ticks: int = 0
    last_steps: list[StepResult] = field(default_factory=list, repr=False)

    @classmethod
    def create(
        cls,
        *,
        pop: float | None = None,
        laborers: dict[Labor, float] | None = None,
        settings: Settings | None = None,
        solver: GaussNewtonSolver | None = None,
    ) -> "Economy":
        """Build an economy from settings; every labor starts at 1.0 by default."""
        if settings is None:
            settings = get_settings()
        if laborers is None:
            laborers = {labor: 1.0 for labor in LABORS}
        missing = [labor for labor in LABORS if labor not in laborers]
        if missing:
            msg = f"laborers missing for: {', '.join(missing)}."
            raise ValueError(msg)

        return cls(
            pop=settings.POPULATION if pop is None else pop,
            laborers={labor: float(laborers[labor]) for labor in LABORS},
            overproduction_target=settings.OVERPRODUCTION_TARGET,
            min_workforce_alloc=settings.MIN_WORKFORCE_ALLOC,
            steps_per_tick=settings.SOLVER_STEPS_PER_TICK,
            jacobian_scale=settings.JACOBIAN_SCALE,
            solver=solver if solver is not None else GaussNewtonSolver(settings.DAMPING_BETA),
        )

    # ------------------------------------------------------------------
    # Tick phases
    # ------------------------------------------------------------------

    def derive_available_goods(self) -> None:
        """Compute productivity, demand, availability and price per good."""
        total_demand: dict[Good, float] = {}
        total_supply: dict[Good, float] = {}

        for labor in LABORS:
            industry = industry_for(labor)
            laborers = self.laborers.get(labor, 0.0)

            # Productivity is bounded to [0, 1] by the scarcest input.
            limiting_good, productivity = min(
                (
                    (good, min(max(self.available.get(good, 0.0), 0.0), 1.0))
                    for good, _ in industry.inputs
                ),
                key=lambda item: item[1],
                default=(None, 1.0),
            )

            for good, amount in industry.inputs:
                total_demand[good] = total_demand.get(good, 0.0) + amount * laborers

            self.productivity[labor] = (productivity, limiting_good)

            for good, amount in industry.outputs:
                total_supply[good] = (
                    total_supply.get(good, 0.0) + amount * laborers * productivity
                )

        total_demand[Good.FOOD] = self.pop * FOOD_PER_CAPITA

        for good in GOODS:
            supply = total_supply.get(good, 0.0)
            demand = total_demand.get(good, 0.0)
            self.available[good] = supply / max(demand, EPSILON)
            self.price[good] = demand / max(supply, EPSILON)
            self.demand[good] = demand

    def derive_labor_values(self) -> None:
        """Propagate labor values forward through the supply chain.

        A good's labor value is the labor value of its inputs plus the labor
        time to make it, normalised across all industries producing it.
        """
        total_labor_values: dict[Good, float] = {}
        total_produced: dict[Good, float] = {}
        labor_time = 1.0

        for labor in LABORS:
            industry = industry_for(labor)
            laborers = self.laborers.get(labor, 0.0)

            total_input_value = sum(
                self.labor_value.get(good, 0.0) * amount
                for good, amount in industry.inputs
            )
            productivity = self.productivity.get(labor, (0.0, None))[0]

            for good, amount in industry.outputs:
                volume = amount * laborers * productivity
                total_labor_values[good] = total_labor_values.get(good, 0.0) + (
                    (total_input_value + labor_time) / max(volume, EPSILON)
                )
                total_produced[good] = total_produced.get(good, 0.0) + volume

        for good in GOODS:
            produced = total_produced.get(good, 0.0)
            self.labor_value[good] = total_labor_values.get(good, 0.0) / max(produced, EPSILON)
            self.output[good] = produced

    def redistribute_laborers(self) -> list[StepResult]:
        """Move laborers toward supply/demand = overproduction target.

        Minimizes Σ_g (supply_g / demand_g − target)² over the allocation with
        ``steps_per_tick`` damped Gauss-Newton steps, then rescales to the
        working population and floors each industry.

        Raises:
            SingularMatrix: If the solver's normal matrix cannot be inverted
                (in practice only with zero damping).
        """
        a, b, x0 = labor_system(self)
        model = LinearResidualModel(a, b, jacobian_scale=self.jacobian_scale)
        steps = self.solver.iterate(model=model, x0=x0, steps=self.steps_per_tick)
        allocation = steps[-1].x if steps else x0

        for i, labor in enumerate(LABORS):
            self.laborers[labor] = allocation[i]

        # Everybody in the economy can work.
        working_pop = self.pop
        total_laborers = sum(self.laborers.values())
        factor = working_pop / total_laborers if total_laborers > working_pop else 1.0

        # Keeping a few laborers in every industry lets the economy react
        # when conditions change instead of draining an industry to zero.
        for labor in LABORS:
            self.laborers[labor] = max(self.laborers[labor] * factor, self.min_workforce_alloc)

        logger.debug(
            "redistributed laborers: error %.6g -> %.6g, scale factor %.4f",
            steps[0].error_before if steps else 0.0,
            steps[-1].error_after if steps else 0.0,
            factor,
        )
        return steps

    def tick(self) -> TickReport:
        self.derive_available_goods()
        self.derive_labor_values()
        self.last_steps = self.redistribute_laborers()
        report = self.snapshot()
        self.ticks += 1
        return report

    def snapshot(self) -> TickReport:
        return TickReport(
            tick=self.ticks,
            pop=self.pop,
            laborers=dict(self.laborers),
            available=dict(self.available),
            labor_value=dict(self.labor_value),
            price=dict(self.price),
            demand=dict(self.demand),
            productivity=dict(self.productivity),
            output=dict(self.output),
            solver_steps=list(self.last_steps),
        )


def labor_system(economy: Economy) -> tuple[Matrix, Vector, Vector]:
    """Build (A, b, x0) for the labor reallocation least-squares problem.

    A[g, l] = amount of g one laborer of l produces, divided by l's
    productivity and by the demand for g, so A·x is supply/demand per good.
    b is the overproduction target for every good and x0 the current
    allocation. Requires :meth:`Economy.derive_available_goods` to have run.
    """
    a = Matrix.zeros(len(GOODS), len(LABORS))
    row_of = {good: n for n, good in enumerate(GOODS)}

    for p, labor in enumerate(LABORS):
        productivity = economy.productivity.get(labor, (0.0, None))[0]
        for good, amount in industry_for(labor).outputs:
            demand = economy.demand.get(good, 0.0)
            a[row_of[good], p] = (
                amount / max(productivity, MIN_PRODUCTIVITY) / max(demand, EPSILON)
            )

    b = Vector([economy.overproduction_target] * len(GOODS))
    x0 = Vector([economy.laborers[labor] for labor in LABORS])
    return a, b, x0
