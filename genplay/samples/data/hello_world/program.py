import greetings


class Program:
    @staticmethod
    def Main():
        print(greetings.Greeter.message())
