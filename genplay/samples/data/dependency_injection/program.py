from abc import ABC, abstractmethod

import di


class Program:
    @staticmethod
    def Main():
        # Comment and uncomment these lines to see how the generation changes
        foo = di.ServiceLocator.get_service(IFoo)

        another_foo = di.ServiceLocator.get_service(IFoo)

        bar = di.ServiceLocator.get_service(IBar)

        # Uncomment to demonstrate generator errors:
        # baz = di.ServiceLocator.get_service(IBaz)

        print(bar.greet())
        print("Same IFoo instance:", foo is another_foo)


# Comment and uncomment the decorator to see how the generation changes
# @di.transient
class IFoo(ABC):
    @abstractmethod
    def message(self) -> str: ...


class Foo(IFoo):
    def message(self) -> str:
        return "Hello World"


class IBar(ABC):
    @abstractmethod
    def greet(self) -> str: ...


class Bar(IBar):
    def __init__(self, foo: IFoo):
        self.foo = foo

    def greet(self) -> str:
        return self.foo.message()


class IBaz(ABC):
    pass
