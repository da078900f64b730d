"""
Sample decision program.
evaluate([False, False, False, False]) returns 1 and
evaluate([False, False, False, True]) returns 6; the reachable set is
[1, 4, 5, 6].
"""


def evaluate(parameters):
    x = 1
    if parameters[0]:
        x = 2
        if parameters[1]:
            x = 3
        x = 4
        if parameters[2]:
            x = 5
    if parameters[3]:
        x = 6
    return x
