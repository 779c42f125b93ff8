import random

import dicehist


def test_boundary_round_trip():
    text = dicehist.sanitize("roll 2d6 then 1d6, please")
    assert text == "2d616,"

    decision = dicehist.build_decision(
        ">=", dicehist.parse("1d20"), 10, dicehist.parse("2d6,1d6")
    )
    assert dicehist.describe(decision) == "if 1d20 >= 10 then 3d6"

    pmf = dicehist.simulate(decision, 2000, random.Random(8))
    assert len(pmf) == 18
    assert abs(sum(pmf) - 1.0) < 1e-9

    merged = dicehist.simulate_parallel(decision, 2000, workers=2, seed=8)
    assert len(merged) == 18
