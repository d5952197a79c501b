from enum import IntEnum

import enum_validation


class Program:
    @staticmethod
    def Main():
        Program.do_something_simple(Simple.SECOND)
        Program.do_something_complex(Complex.FOURTH)

        # This one is invalid!
        Program.do_something_complex(5)

    @staticmethod
    def do_something_simple(value: int):
        enum_validation.EnumValidator.validate(Simple, value)

        print("Doing something simple with", Simple(value).name)

    @staticmethod
    def do_something_complex(value: int):
        enum_validation.EnumValidator.validate(Complex, value)

        print("Doing something complex with", Complex(value).name)


class Simple(IntEnum):
    FIRST = 0
    SECOND = 1


class Complex(IntEnum):
    FIRST = 3
    SECOND = 4
    THIRD = 7
    FOURTH = 8
    FIFTH = 9
