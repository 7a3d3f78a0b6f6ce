from microgel_annotator.cli import main

main()
