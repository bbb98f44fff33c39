"""Configuration, directories, migrations, command-line parsing and external command construction."""