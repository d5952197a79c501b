from genplay.generators import SourceGenerator


class HelloWorldGenerator(SourceGenerator):
    def execute(self, context):
        context.add_source(
            "greetings",
            '''
class Greeter:
    @staticmethod
    def message():
        return "Hello World"
''',
        )
