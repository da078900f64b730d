"""Nested decision program; the reachable set is [1, 4, 5, 6]."""


def evaluate(*parameters):
    x = 1
    if parameters[0]:
        x = 2
        if parameters[1]:
            x = 3
        x = 4
        if parameters[2]:
            if parameters[3]:
                x = 6
            if parameters[4]:
                x = 5
    return x
