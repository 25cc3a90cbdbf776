"""
Rate derivation for the acne progression engine.

Maps the eight control parameters onto the physical rates consumed by the
integrator. Runs once per tick, before integration, so parameter changes
made between ticks take effect on the next update.
"""

from .state import ControlParameters, DerivedRates, BiologicalLevels
from ..utils.math_utils import exp_smooth


BASE_SEBUM_RATE = 0.05          # Sebum units per hour at neutral temperature
BASE_BACTERIA_GROWTH = 0.05     # Exponential growth per hour
MEDICATION_SMOOTHING = 0.01     # Low-pass factor per tick (~100 tick time constant)

FRICTION_ONSET = 300            # Friction below this causes no inflammation
HUMIDITY_ONSET = 600            # Humidity below this has no effect


class RateDeriver:
    """
    Computes derived rates from control parameters.

    The deriver is stateless apart from the smoothed medication level,
    which it writes into the biological levels it is given.

    Example:
        >>> deriver = RateDeriver()
        >>> rates = deriver.derive(ControlParameters(), BiologicalLevels(), 1.0)
        >>> rates.sebum_rate
        0.05
    """

    def derive(self, params: ControlParameters, levels: BiologicalLevels,
               accelerator: float = 1.0) -> DerivedRates:
        """
        Derive this tick's rates and advance the medication filter.

        Args:
            params: Current control parameters
            levels: Biological levels (medication level is updated in place)
            accelerator: Global progression multiplier

        Returns:
            Freshly computed DerivedRates
        """
        rates = DerivedRates(
            sebum_rate=self.sebum_rate(params, accelerator),
            bacteria_growth_rate=self.bacteria_growth_rate(params, accelerator),
            baseline_inflammation=self.baseline_inflammation(params),
            humidity_effect=self.humidity_effect(params),
        )

        levels.medication = exp_smooth(levels.medication, params.medication,
                                       MEDICATION_SMOOTHING)
        levels.clamp()

        return rates

    @staticmethod
    def sebum_rate(params: ControlParameters, accelerator: float = 1.0) -> float:
        """Sebum production, raised by temperature."""
        rate = BASE_SEBUM_RATE * (1 + 0.002 * (params.temperature - 500)) * accelerator
        return max(0.0, rate)

    @staticmethod
    def bacteria_growth_rate(params: ControlParameters, accelerator: float = 1.0) -> float:
        """Bacterial growth, raised by temperature and damped by medication."""
        rate = (BASE_BACTERIA_GROWTH
                * (1 + 0.001 * (params.temperature - 500))
                * (1 - params.medication / 2000)
                * accelerator)
        return max(0.0, rate)

    @staticmethod
    def baseline_inflammation(params: ControlParameters) -> float:
        """Friction-driven inflammation; max ~0.5 at friction 1000."""
        if params.friction <= FRICTION_ONSET:
            return 0.0
        return (params.friction - FRICTION_ONSET) / 1400

    @staticmethod
    def humidity_effect(params: ControlParameters) -> float:
        """Pore-blocking multiplier; up to 1.5x at maximum humidity."""
        if params.humidity <= HUMIDITY_ONSET:
            return 1.0
        return 1 + (params.humidity - HUMIDITY_ONSET) / 800
